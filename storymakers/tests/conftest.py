import io

import pytest
import pytest_asyncio
from PIL import Image

from storymakers.backend import build_client
from storymakers.config import Settings


@pytest.fixture
def settings(tmp_path):
    """File-backed SQLite and a local media directory, both under tmp_path"""
    return Settings(
        database_url=f'sqlite+aiosqlite:///{tmp_path / "storymakers.db"}',
        jwt_secret='test-secret',
        storage_backend='local',
        media_root=str(tmp_path / 'media'),
        media_url='/media',
        site_url='https://storymakers.test',
    )


@pytest_asyncio.fixture
async def client(settings):
    client = build_client(settings)
    await client.create_schema()
    yield client
    await client.dispose()


@pytest.fixture
def png_bytes():
    def make(color='red', size=(4, 4)):
        buf = io.BytesIO()
        Image.new('RGB', size, color).save(buf, format='PNG')
        return buf.getvalue()
    return make
