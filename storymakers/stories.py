import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .errors import BackendError, ConfigurationError
from .models.posts import STATUS_APPROVED
from .schemas.posts import StoryRecord

logger = logging.getLogger(__name__)


async def list_approved(client, district: Optional[str] = None, limit: Optional[int] = None) -> List[StoryRecord]:
    """Approved stories, newest first; `district` is a case-insensitive substring match"""
    if client is None:
        raise ConfigurationError('Backend client not initialized. Please check your configuration.')
    try:
        async with client.session() as session:
            posts = await crud.list_posts(session, statuses=(STATUS_APPROVED,), district=district, limit=limit)
            return [StoryRecord.from_post(p) for p in posts]
    except SQLAlchemyError as e:
        logger.error(f'Loading stories failed: {e}')
        raise BackendError('Unable to load stories. Please try again later.')


async def get_approved_story(client, story_id: int) -> Optional[StoryRecord]:
    if client is None:
        raise ConfigurationError('Backend client not initialized. Please check your configuration.')
    try:
        async with client.session() as session:
            post = await crud.get_post(session, story_id, status=STATUS_APPROVED, with_images=True)
            if post is None:
                return None
            return StoryRecord.from_post(post, with_images=True)
    except SQLAlchemyError as e:
        logger.error(f'Loading story {story_id} failed: {e}')
        raise BackendError('Unable to load story. Please try again later.')
