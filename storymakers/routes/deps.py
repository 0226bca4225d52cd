from typing import Optional

from fastapi import Depends, HTTPException, Request

from .. import sessions
from ..errors import BackendError, ConfigurationError, StoryNotFoundError, ValidationError
from ..language import LANGUAGE_COOKIE, normalize_language

ACCESS_COOKIE = 'access_token'
REFRESH_COOKIE = 'refresh_token'


def get_accessor(request: Request):
    return request.app.state.backend_accessor


def get_client(request: Request):
    return get_accessor(request).get()


def get_language(request: Request) -> str:
    return normalize_language(request.cookies.get(LANGUAGE_COOKIE))


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get('Authorization')
    if header and header.lower().startswith('bearer '):
        return header[len('bearer '):].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


async def require_admin_profile(request: Request, client=Depends(get_client)):
    # AuthorizationError propagates to the app handler, which clears the cookies
    try:
        return await sessions.require_admin(client, bearer_token(request))
    except ConfigurationError as e:
        raise HTTPException(503, str(e))
    except BackendError as e:
        raise HTTPException(502, str(e))


def to_http(e: Exception, action: str) -> HTTPException:
    """Map a pipeline error to the HTTP status the API reports for it"""
    if isinstance(e, ValidationError):
        return HTTPException(400, str(e))
    if isinstance(e, StoryNotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, ConfigurationError):
        return HTTPException(503, str(e))
    if isinstance(e, BackendError):
        return HTTPException(502, f'Failed to {action}: {e}')
    return HTTPException(500, f'Failed to {action}: {e}')
