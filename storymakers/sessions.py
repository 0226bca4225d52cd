"""
Admin sign-in, sign-out and session introspection.

Only profiles with the admin role may hold a session; anyone else is signed
out again right away. The role is looked up on every introspection, so a
demoted admin loses access on the next request.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .auth import decode_token
from .errors import AuthorizationError, BackendError, ConfigurationError
from .models.profiles import ROLE_ADMIN
from .schemas.users import ProfileOut, TokenOut

logger = logging.getLogger(__name__)

ACCESS_DENIED = 'Access denied. Admin privileges required.'


def _require(client):
    if client is None:
        raise ConfigurationError('Backend client not initialized. Please check your configuration.')
    return client


async def sign_in(client, email: str, password: str, user_agent: Optional[str] = None,
                  ip: Optional[str] = None) -> Optional[Tuple[ProfileOut, TokenOut]]:
    """Return (profile, tokens) for an admin, None for bad credentials"""
    client = _require(client)
    try:
        async with client.session() as session:
            async with session.begin():
                profile, tokens = await crud.authenticate_profile(
                    session, email, password, client.settings, user_agent=user_agent, ip=ip
                )
                if profile is None:
                    return None
                if profile.role != ROLE_ADMIN:
                    await crud.revoke_profile_sessions(session, profile.id)
                    denied = True
                else:
                    denied = False
                    out = ProfileOut.model_validate(profile)
    except SQLAlchemyError as e:
        logger.error(f'Sign-in failed for {email}: {e}')
        raise BackendError('Sign-in failed. Please try again.')
    if denied:
        logger.warning(f'Non-admin sign-in rejected for {email}')
        raise AuthorizationError(ACCESS_DENIED)
    logger.info(f'Admin {out.id} signed in')
    return out, TokenOut(**tokens)


async def sign_out(client, refresh_token: Optional[str]) -> bool:
    client = _require(client)
    if not refresh_token:
        return False
    try:
        async with client.session() as session:
            async with session.begin():
                return await crud.revoke_refresh_token(session, refresh_token)
    except SQLAlchemyError as e:
        logger.error(f'Sign-out failed: {e}')
        raise BackendError('Sign-out failed. Please try again.')


async def current_profile(client, token: Optional[str]) -> Optional[ProfileOut]:
    """Decode an access token and re-read its profile; None when absent or invalid"""
    client = _require(client)
    if not token:
        return None
    payload = decode_token(token, client.settings)
    if not payload or 'id' not in payload:
        return None
    try:
        async with client.session() as session:
            profile = await crud.get_profile(session, payload['id'])
    except SQLAlchemyError as e:
        logger.error(f'Session lookup failed: {e}')
        raise BackendError('Session lookup failed. Please try again.')
    return ProfileOut.model_validate(profile) if profile else None


async def require_admin(client, token: Optional[str]) -> ProfileOut:
    """Return the admin behind `token`; a signed-in non-admin loses every open session"""
    profile = await current_profile(client, token)
    if profile is None:
        raise AuthorizationError(ACCESS_DENIED)
    if profile.role != ROLE_ADMIN:
        try:
            async with client.session() as session:
                async with session.begin():
                    revoked = await crud.revoke_profile_sessions(session, profile.id)
        except SQLAlchemyError as e:
            logger.error(f'Session revocation failed for profile {profile.id}: {e}')
            raise BackendError('Session lookup failed. Please try again.')
        logger.warning(f'Profile {profile.id} lost admin role; {revoked} sessions revoked')
        raise AuthorizationError(ACCESS_DENIED)
    return profile
