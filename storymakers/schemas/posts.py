from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ParagraphBlock(BaseModel):
    type: Literal['paragraph'] = 'paragraph'
    text: str = ''


class HeadingBlock(BaseModel):
    type: Literal['heading'] = 'heading'
    text: str = ''
    level: Optional[int] = None


class ImageBlock(BaseModel):
    type: Literal['image'] = 'image'
    src: Optional[str] = None
    alt: Optional[str] = None


class UnknownBlock(BaseModel):
    """Any block type this version does not know; kept so it round-trips, never rendered"""
    model_config = ConfigDict(extra='allow')

    type: str = ''


ContentBlock = Union[ParagraphBlock, HeadingBlock, ImageBlock, UnknownBlock]

_BLOCK_TYPES = {
    'paragraph': ParagraphBlock,
    'heading': HeadingBlock,
    'image': ImageBlock,
}


def parse_block(raw) -> ContentBlock:
    if isinstance(raw, BaseModel):
        return raw
    if not isinstance(raw, dict):
        return UnknownBlock()
    model = _BLOCK_TYPES.get(raw.get('type'))
    if model is None:
        return UnknownBlock.model_validate(raw)
    try:
        return model.model_validate(raw)
    except ValueError:
        # wrong field shapes for a known type are treated like an unknown block
        return UnknownBlock.model_validate(raw)


def parse_blocks(raw) -> List[ContentBlock]:
    if not isinstance(raw, list):
        return []
    return [parse_block(item) for item in raw]


def dump_blocks(blocks) -> list:
    return [block.model_dump(exclude_none=True) for block in blocks]


class PostImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    image_url: str
    caption: Optional[str] = None
    display_order: int = 0


class StoryRecord(BaseModel):
    id: int
    title: str
    title_zh: Optional[str] = None
    slug: str = ''
    content: List[ContentBlock] = Field(default_factory=list)
    excerpt: Optional[str] = None
    excerpt_zh: Optional[str] = None
    status: str = 'pending'
    project_district: Optional[str] = None
    cover_image_url: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    images: List[PostImageOut] = Field(default_factory=list)

    @field_validator('content', mode='before')
    @classmethod
    def _coerce_blocks(cls, value):
        return parse_blocks(value)

    @classmethod
    def from_post(cls, post, with_images: bool = False) -> 'StoryRecord':
        return cls(
            id=post.id,
            title=post.title,
            title_zh=post.title_zh,
            slug=post.slug or '',
            content=post.content,
            excerpt=post.excerpt,
            excerpt_zh=post.excerpt_zh,
            status=post.status,
            project_district=post.project_district,
            cover_image_url=post.cover_image_url,
            author_name=post.author_name,
            author_email=post.author_email,
            created_at=post.created_at,
            updated_at=post.updated_at,
            published_at=post.published_at,
            tags=[pt.tag.name for pt in post.post_tags if pt.tag is not None],
            images=[PostImageOut.model_validate(img) for img in post.images] if with_images else [],
        )


class SubmissionOut(BaseModel):
    ok: bool = True
    message: str
    story_id: int
    failed_uploads: List[str] = Field(default_factory=list)
    skipped_tags: List[str] = Field(default_factory=list)


class StatusChangeOut(BaseModel):
    ok: bool = True
    message: str
    story_id: int
    status: str
