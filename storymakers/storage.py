"""
Object storage for story photos.

Two backends share one interface: S3 through aioboto3 for deployments and a
local directory written with aiofiles for development and tests.
"""
import io
import logging
import mimetypes
import os
from typing import Optional

import aioboto3
import aiofiles
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from .errors import BackendError, ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = 'post-images'
DEFAULT_CACHE_SECONDS = 3600
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def validate_image(data: bytes, filename: Optional[str] = None) -> None:
    """Reject payloads that are empty, too large or not a readable image"""
    if not data:
        raise ValidationError(f'{filename or "file"} is empty')
    if len(data) > MAX_FILE_SIZE:
        raise ValidationError(f'{filename or "file"} is too large. Max size is 10MB')
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ValidationError(f'{filename or "file"} is not a valid image: {e}')


def guess_content_type(name: str, declared: Optional[str] = None) -> str:
    if declared and declared != 'application/octet-stream':
        return declared
    return mimetypes.guess_type(name)[0] or 'application/octet-stream'


class S3ObjectStorage:
    """Uploads to a public-read S3 bucket under post-images/"""

    def __init__(self, bucket: str, region: str, access_key_id: Optional[str] = None,
                 secret_access_key: Optional[str] = None, prefix: str = UPLOAD_PREFIX):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._session = aioboto3.Session()

    def _key(self, name: str) -> str:
        return f'{self.prefix}/{name}' if self.prefix else name

    def _client(self):
        return self._session.client(
            's3',
            region_name=self.region,
            aws_access_key_id=self._access_key_id,
            aws_secret_access_key=self._secret_access_key,
            config=Config(signature_version='s3v4'),
        )

    async def upload(self, name: str, data: bytes, content_type: Optional[str] = None,
                     cache_seconds: int = DEFAULT_CACHE_SECONDS, overwrite: bool = False) -> str:
        key = self._key(name)
        params = {
            'Bucket': self.bucket,
            'Key': key,
            'Body': data,
            'ContentType': guess_content_type(name, content_type),
            'CacheControl': f'max-age={int(cache_seconds)}',
        }
        if not overwrite:
            params['IfNoneMatch'] = '*'
        try:
            async with self._client() as client:
                await client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise BackendError(f'Failed to upload {name}: {e}')
        logger.info(f'Uploaded s3://{self.bucket}/{key}')
        return key

    def public_url(self, path: str) -> str:
        return f'https://{self.bucket}.s3.{self.region}.amazonaws.com/{path}'


class LocalObjectStorage:
    """Writes uploads below `root` and serves them from `base_url`"""

    def __init__(self, root: str, base_url: str):
        self.root = root
        self.base_url = base_url.rstrip('/')

    def file_path(self, path: str) -> str:
        return os.path.join(self.root, path)

    async def upload(self, name: str, data: bytes, content_type: Optional[str] = None,
                     cache_seconds: int = DEFAULT_CACHE_SECONDS, overwrite: bool = False) -> str:
        # cache_seconds only matters for the HTTP layer in front of a real bucket
        if os.path.basename(name) != name or name in ('', '.', '..'):
            raise BackendError(f'Invalid object name {name!r}')
        os.makedirs(self.root, exist_ok=True)
        file_path = self.file_path(name)
        mode = 'wb' if overwrite else 'xb'
        try:
            async with aiofiles.open(file_path, mode) as f:
                await f.write(data)
        except FileExistsError:
            raise BackendError(f'Object {name} already exists')
        except OSError as e:
            raise BackendError(f'Failed to store {name}: {e}')
        return name

    def public_url(self, path: str) -> str:
        return f'{self.base_url}/{path}'


def build_storage(settings):
    if settings.storage_backend == 's3':
        return S3ObjectStorage(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    if settings.storage_backend == 'local':
        return LocalObjectStorage(settings.media_root, settings.media_url)
    raise ConfigurationError(f'Unknown storage backend {settings.storage_backend!r}')
