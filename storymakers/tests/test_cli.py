import asyncio

import pytest
from typer.testing import CliRunner

from storymakers.backend import build_client
from storymakers.cli import app
from storymakers.sessions import sign_in


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_env(monkeypatch, settings):
    """Point the CLI's environment at the test database and media directory"""
    monkeypatch.setenv('DATABASE_URL', settings.database_url)
    monkeypatch.setenv('JWT_SECRET', settings.jwt_secret)
    monkeypatch.setenv('STORAGE_BACKEND', 'local')
    monkeypatch.setenv('MEDIA_ROOT', settings.media_root)
    return settings


class TestCLI:
    def test_created_admin_can_sign_in(self, runner, cli_env):
        assert runner.invoke(app, ['init-db']).exit_code == 0
        result = runner.invoke(app, ['create-admin', 'ops@storymakers.tw', '--password', 'pw-123456'])
        assert result.exit_code == 0, result.output
        assert 'Admin ops@storymakers.tw created' in result.output

        async def signed_in():
            client = build_client(cli_env)
            try:
                return await sign_in(client, 'ops@storymakers.tw', 'pw-123456')
            finally:
                await client.dispose()

        profile, tokens = asyncio.run(signed_in())
        assert profile.role == 'admin'
        assert tokens.access_token

    def test_duplicate_email(self, runner, cli_env):
        runner.invoke(app, ['init-db'])
        args = ['create-admin', 'ops@storymakers.tw', '--password', 'pw-123456']
        assert runner.invoke(app, args).exit_code == 0
        assert runner.invoke(app, args).exit_code == 1

    def test_unconfigured_backend(self, runner, monkeypatch):
        monkeypatch.setenv('DATABASE_URL', 'YOUR_DATABASE_URL')
        assert runner.invoke(app, ['init-db']).exit_code == 1
