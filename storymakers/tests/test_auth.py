from datetime import timedelta

import pytest

from storymakers import crud
from storymakers.auth import create_access_token, decode_token, hash_password, verify_password
from storymakers.errors import AuthorizationError
from storymakers.sessions import current_profile, require_admin, sign_in, sign_out


async def _profile(client, email, role):
    async with client.session() as session:
        async with session.begin():
            profile = await crud.create_profile(session, email, 'correct horse', role=role)
            return profile.id


def test_password_hashing():
    hashed = hash_password('s3cret')
    assert hashed != 's3cret'
    assert verify_password('s3cret', hashed)
    assert not verify_password('nope', hashed)


def test_expired_token(settings):
    token = create_access_token({'id': 1}, settings, expires_delta=timedelta(seconds=-1))
    assert decode_token(token, settings) is None
    assert decode_token('garbage', settings) is None


class TestSessions:
    @pytest.mark.asyncio
    async def test_admin_sign_in_and_out(self, client):
        await _profile(client, 'admin@storymakers.tw', 'admin')
        profile, tokens = await sign_in(client, 'admin@storymakers.tw', 'correct horse')
        assert profile.role == 'admin'
        assert (await require_admin(client, tokens.access_token)).id == profile.id
        assert await sign_out(client, tokens.refresh_token) is True
        assert await sign_out(client, tokens.refresh_token) is False

    @pytest.mark.asyncio
    async def test_bad_password(self, client):
        await _profile(client, 'admin@storymakers.tw', 'admin')
        assert await sign_in(client, 'admin@storymakers.tw', 'wrong') is None

    @pytest.mark.asyncio
    async def test_non_admin_denied_and_signed_out(self, client):
        await _profile(client, 'writer@storymakers.tw', 'contributor')
        with pytest.raises(AuthorizationError) as exc:
            await sign_in(client, 'writer@storymakers.tw', 'correct horse')
        assert str(exc.value) == 'Access denied. Admin privileges required.'

    @pytest.mark.asyncio
    async def test_role_reread_on_every_check(self, client):
        profile_id = await _profile(client, 'admin@storymakers.tw', 'admin')
        _, tokens = await sign_in(client, 'admin@storymakers.tw', 'correct horse')
        async with client.session() as session:
            async with session.begin():
                profile = await crud.get_profile(session, profile_id)
                profile.role = 'contributor'
        assert (await current_profile(client, tokens.access_token)).role == 'contributor'
        with pytest.raises(AuthorizationError):
            await require_admin(client, tokens.access_token)
        # the demotion also ends the stored refresh session
        assert await sign_out(client, tokens.refresh_token) is False

    @pytest.mark.asyncio
    async def test_no_token(self, client):
        assert await current_profile(client, None) is None
        with pytest.raises(AuthorizationError):
            await require_admin(client, None)
