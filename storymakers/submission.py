"""
Story submission pipeline.

validate -> upload photos one by one -> write post, tag links and image
records in a single transaction. Photo uploads and tag resolution are
best effort: a failure is logged, counted, reported on the result and
skipped, and the story is still created.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .config import DEFAULT_DISTRICT
from .content import FALLBACK_SLUG, parse_tags, slugify, split_paragraphs, upload_name
from .core import STORIES_SUBMITTED, TAGS_SKIPPED, UPLOADS_FAILED
from .errors import BackendError, ConfigurationError, ValidationError
from .models.posts import STATUS_PENDING
from .schemas.posts import dump_blocks
from .storage import DEFAULT_CACHE_SECONDS, validate_image

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = 'Your story has been submitted successfully! It will be reviewed before publishing.'


class UploadedPhoto(BaseModel):
    filename: Optional[str] = None
    data: bytes = b''
    content_type: Optional[str] = None


class SubmissionForm(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    project_district: Optional[str] = None
    tags: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    rights_owned: bool = False
    photos: List[UploadedPhoto] = Field(default_factory=list)


@dataclass
class SubmissionResult:
    story_id: int
    slug: str
    image_urls: List[str] = field(default_factory=list)
    failed_uploads: List[str] = field(default_factory=list)
    skipped_tags: List[str] = field(default_factory=list)


def validate_submission(form: SubmissionForm) -> None:
    """Raise ValidationError for the first failed precondition"""
    if not (form.title or '').strip():
        raise ValidationError('Title is required.')
    if not (form.content or '').strip():
        raise ValidationError('Story content is required.')
    if not form.rights_owned:
        raise ValidationError('You must confirm that you own the rights to the content you upload.')


def _now_ms() -> int:
    return int(time.time() * 1000)


async def upload_photos(storage, slug: str, photos: List[UploadedPhoto]) -> Tuple[list, list]:
    """Upload sequentially; returns ([(public_url, storage_path)], [failed filenames])"""
    uploaded, failed = [], []
    for index, photo in enumerate(photos):
        if not photo.data:
            continue
        name = upload_name(slug, _now_ms(), index, photo.filename)
        try:
            validate_image(photo.data, photo.filename)
            path = await storage.upload(
                name,
                photo.data,
                content_type=photo.content_type,
                cache_seconds=DEFAULT_CACHE_SECONDS,
                overwrite=False,
            )
        except (ValidationError, BackendError) as e:
            logger.warning(f'Image upload skipped for {photo.filename or name}: {e}')
            UPLOADS_FAILED.inc()
            failed.append(photo.filename or name)
            continue
        uploaded.append((storage.public_url(path), path))
    return uploaded, failed


async def _attach_tags(session, post_id: int, names: List[str]) -> List[str]:
    skipped = []
    for name in names:
        try:
            async with session.begin_nested():
                tag = await crud.get_or_create_tag(session, name)
                await crud.link_tag(session, post_id, tag.id)
        except (SQLAlchemyError, BackendError) as e:
            logger.warning(f'Tag {name!r} skipped for story {post_id}: {e}')
            TAGS_SKIPPED.inc()
            skipped.append(name)
    return skipped


async def submit_story(client, form: SubmissionForm) -> SubmissionResult:
    validate_submission(form)
    if client is None:
        raise ConfigurationError('Backend client not initialized. Please check your configuration.')

    slug = slugify(form.title) or FALLBACK_SLUG
    uploads, failed = await upload_photos(client.storage, slug, form.photos)
    blocks = split_paragraphs(form.content)
    cover_image_url = uploads[0][0] if uploads else None

    try:
        async with client.session() as session:
            async with session.begin():
                post = await crud.insert_post(
                    session,
                    title=form.title.strip(),
                    slug=slug,
                    content=dump_blocks(blocks),
                    status=STATUS_PENDING,
                    project_district=(form.project_district or '').strip() or DEFAULT_DISTRICT,
                    cover_image_url=cover_image_url,
                    author_name=(form.author_name or '').strip() or None,
                    author_email=(form.author_email or '').strip() or None,
                )
                skipped = await _attach_tags(session, post.id, parse_tags(form.tags))
                if uploads:
                    await crud.insert_post_images(session, post.id, uploads)
                story_id = post.id
    except SQLAlchemyError as e:
        logger.error(f'Story submission failed for slug {slug!r}: {e}')
        raise BackendError('An error occurred while submitting your story. Please try again.')

    STORIES_SUBMITTED.inc()
    logger.info(f'Story {story_id} submitted for review ({len(uploads)} photos, {len(failed)} skipped)')
    return SubmissionResult(
        story_id=story_id,
        slug=slug,
        image_urls=[url for url, _ in uploads],
        failed_uploads=failed,
        skipped_tags=skipped,
    )
