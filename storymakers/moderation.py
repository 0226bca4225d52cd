"""
Moderation pipeline: list everything awaiting or past review and move a
story between statuses. Authorization happens in the HTTP layer.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .core import MODERATION_TRANSITIONS
from .errors import BackendError, ConfigurationError, StoryNotFoundError, ValidationError
from .models.posts import STATUS_APPROVED, STATUS_REJECTED, STATUSES
from .schemas.posts import StoryRecord

logger = logging.getLogger(__name__)

SETTABLE_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)


def _require(client):
    if client is None:
        raise ConfigurationError('Backend client not initialized. Please check your configuration.')
    return client


async def list_reviewable(client) -> List[StoryRecord]:
    client = _require(client)
    try:
        async with client.session() as session:
            posts = await crud.list_posts(session, statuses=STATUSES)
            return [StoryRecord.from_post(p) for p in posts]
    except SQLAlchemyError as e:
        logger.error(f'Loading reviewable stories failed: {e}')
        raise BackendError('Failed to load submissions. Please try again.')


async def set_status(client, story_id: int, status: str, now: Optional[datetime] = None) -> StoryRecord:
    if status not in SETTABLE_STATUSES:
        raise ValidationError(f'Invalid status {status!r}; expected approved or rejected')
    client = _require(client)
    try:
        async with client.session() as session:
            async with session.begin():
                post = await crud.update_post_status(session, story_id, status, now=now)
                if post is None:
                    raise StoryNotFoundError(story_id)
            post = await crud.get_post(session, story_id)
            record = StoryRecord.from_post(post)
    except SQLAlchemyError as e:
        logger.error(f'Status change to {status} failed for story {story_id}: {e}')
        raise BackendError(f'Failed to {status[:-1]} story. Please try again.')

    MODERATION_TRANSITIONS.labels(status=status).inc()
    logger.info(f'Story {story_id} marked {status}')
    return record
