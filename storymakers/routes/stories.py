import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..config import DEFAULT_DISTRICT
from ..errors import BackendError, ConfigurationError
from ..language import label
from ..rendering import (
    SITE_NAME,
    render_article_head,
    render_compact_cards,
    render_message,
    render_page,
    render_story_cards,
    render_story_detail,
)
from ..stories import get_approved_story, list_approved
from .deps import get_accessor, get_client, get_language

logger = logging.getLogger(__name__)

router = APIRouter()

SHILIN_LIMIT = 3


async def _listing(client, lang: str, district: Optional[str] = None, limit: Optional[int] = None) -> str:
    """Cards for a listing, or the inline message the page shows instead"""
    if client is None:
        return render_message(label('needs_configuration', lang))
    try:
        stories = await list_approved(client, district=district, limit=limit)
    except (BackendError, ConfigurationError) as e:
        logger.error(f'Story listing failed: {e}')
        return render_message(label('load_failed', lang))
    if not stories:
        if district:
            return render_message(label('no_district_stories', lang), raw=True)
        return render_message(label('no_stories', lang))
    if district:
        return f'<div class="stories-grid">{render_compact_cards(stories, lang=lang)}</div>'
    return f'<div class="stories-grid">{render_story_cards(stories, lang=lang)}</div>'


@router.get('/stories', response_class=HTMLResponse)
async def stories_page(client=Depends(get_client), lang: str = Depends(get_language)):
    body = await _listing(client, lang)
    return HTMLResponse(render_page(body, title=f'Stories | {SITE_NAME}', lang=lang))


@router.get('/stories/shilin', response_class=HTMLResponse)
async def shilin_stories(client=Depends(get_client), lang: str = Depends(get_language)):
    body = await _listing(client, lang, district=DEFAULT_DISTRICT, limit=SHILIN_LIMIT)
    return HTMLResponse(render_page(body, title=f'Shilin | {SITE_NAME}', lang=lang))


async def _story_page(request: Request, client, story_id: Optional[str], lang: str) -> HTMLResponse:
    back = '/stories'
    back_label = label('back_to_stories', lang)

    def message(key: str, status_code: int = 200) -> HTMLResponse:
        body = render_message(label(key, lang), link=back, link_label=back_label)
        return HTMLResponse(render_page(body, lang=lang), status_code=status_code)

    if not story_id:
        return message('no_story_id')
    if client is None:
        return message('needs_configuration', 503)
    try:
        story = await get_approved_story(client, int(story_id))
    except ValueError:
        return message('not_found', 404)
    except (BackendError, ConfigurationError) as e:
        logger.error(f'Story {story_id} failed to load: {e}')
        return message('load_failed', 502)
    if story is None:
        return message('not_found', 404)

    site_url = get_accessor(request).settings.site_url
    return HTMLResponse(render_page(
        render_story_detail(story, lang=lang),
        head=render_article_head(story, site_url),
        lang=lang,
    ))


@router.get('/story.html', response_class=HTMLResponse)
async def story_page(request: Request, id: Optional[str] = None, client=Depends(get_client)):
    return await _story_page(request, client, id, 'zh')


@router.get('/story-en.html', response_class=HTMLResponse)
async def story_page_en(request: Request, id: Optional[str] = None, client=Depends(get_client)):
    return await _story_page(request, client, id, 'en')
