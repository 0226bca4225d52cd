from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from .. import moderation, sessions
from ..errors import AuthorizationError, StoryMakersError
from ..models.posts import STATUS_APPROVED, STATUS_REJECTED
from ..rendering import SITE_NAME, render_moderation_list, render_page
from ..schemas.posts import StatusChangeOut
from ..schemas.users import ActionOkOut, TokenOut
from .deps import ACCESS_COOKIE, REFRESH_COOKIE, get_client, require_admin_profile, to_http

router = APIRouter()


def clear_session_cookies(response: Response):
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


@router.post('/login', response_model=TokenOut)
async def login(
    request: Request,
    response: Response,
    email: str = Form(...),
    password: str = Form(...),
    client=Depends(get_client),
):
    try:
        signed_in = await sessions.sign_in(
            client,
            email,
            password,
            user_agent=request.headers.get('user-agent'),
            ip=request.client.host if request.client else None,
        )
    except AuthorizationError:
        raise
    except StoryMakersError as e:
        raise to_http(e, 'sign in')
    if not signed_in:
        raise HTTPException(status_code=401, detail='Invalid credentials')

    _, tokens = signed_in
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, httponly=True, samesite='lax')
    if tokens.refresh_token:
        response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, httponly=True, samesite='lax')
    return tokens


@router.post('/logout', response_model=ActionOkOut)
async def logout(
    request: Request,
    response: Response,
    refresh_token: str = Form(None),
    client=Depends(get_client),
):
    try:
        await sessions.sign_out(client, refresh_token or request.cookies.get(REFRESH_COOKIE))
    except StoryMakersError as e:
        raise to_http(e, 'sign out')
    clear_session_cookies(response)
    return {'ok': True, 'message': 'Signed out'}


@router.get('/posts', response_class=HTMLResponse)
async def review_posts(profile=Depends(require_admin_profile), client=Depends(get_client)):
    try:
        stories = await moderation.list_reviewable(client)
    except StoryMakersError as e:
        raise to_http(e, 'load submissions')
    body = f'<h1>Review submissions</h1><div class="posts-list">{render_moderation_list(stories)}</div>'
    return HTMLResponse(render_page(body, title=f'Admin | {SITE_NAME}', lang='en'))


FORM_CONTENT_TYPES = ('application/x-www-form-urlencoded', 'multipart/form-data')


def _is_form_post(request: Request) -> bool:
    return request.headers.get('content-type', '').split(';')[0].strip() in FORM_CONTENT_TYPES


async def _change_status(request: Request, client, post_id: int, status: str):
    try:
        story = await moderation.set_status(client, post_id, status)
    except StoryMakersError as e:
        raise to_http(e, f'{status[:-1]} story')
    if _is_form_post(request):
        # browser form on the review page: go back to the refreshed list
        return RedirectResponse('/admin/posts', status_code=303)
    return StatusChangeOut(
        message=f'Story {status} successfully!',
        story_id=story.id,
        status=story.status,
    )


@router.post('/posts/{post_id}/approve', response_model=StatusChangeOut)
async def approve_post(request: Request, post_id: int, profile=Depends(require_admin_profile),
                       client=Depends(get_client)):
    return await _change_status(request, client, post_id, STATUS_APPROVED)


@router.post('/posts/{post_id}/reject', response_model=StatusChangeOut)
async def reject_post(request: Request, post_id: int, profile=Depends(require_admin_profile),
                      client=Depends(get_client)):
    return await _change_status(request, client, post_id, STATUS_REJECTED)
