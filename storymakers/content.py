"""
Pure text shaping used by the submission pipeline and the renderers:
slugs, paragraph splitting, tag parsing, excerpts and date labels.
"""
import os
import re
from datetime import datetime, timezone
from typing import List, Optional

from .schemas.posts import ParagraphBlock

EXCERPT_LENGTH = 150
DESCRIPTION_LENGTH = 200
ELLIPSIS = '...'
FALLBACK_SLUG = 'story'

_SLUG_STRIP = re.compile(r'[^a-z0-9\s-]')
_WHITESPACE = re.compile(r'\s+')
_HYPHENS = re.compile(r'-+')
_BLANK_LINE = re.compile(r'\r?\n[ \t]*\r?\n')

_MONTHS_EN = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)


def slugify(title: str) -> str:
    """Lowercase, keep [a-z0-9 -], turn whitespace runs into single hyphens, trim hyphens.

    May return an empty string (a title with no ASCII letters or digits).
    """
    slug = _SLUG_STRIP.sub('', (title or '').lower())
    slug = _WHITESPACE.sub('-', slug)
    slug = _HYPHENS.sub('-', slug)
    return slug.strip('-')


def split_paragraphs(text: str) -> List[ParagraphBlock]:
    blocks = []
    for segment in _BLANK_LINE.split(text or ''):
        segment = segment.strip()
        if segment:
            blocks.append(ParagraphBlock(text=segment))
    return blocks


def parse_tags(raw: Optional[str]) -> List[str]:
    """Comma separated names, trimmed, empties dropped, first occurrence wins"""
    names = []
    for part in (raw or '').split(','):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return names


def upload_name(slug: str, timestamp_ms: int, index: int, filename: Optional[str]) -> str:
    ext = os.path.splitext(filename or '')[1].lstrip('.')
    base = f'{slug}-{timestamp_ms}-{index}'
    return f'{base}.{ext}' if ext else base


def first_paragraph(blocks) -> Optional[str]:
    for block in blocks or []:
        if getattr(block, 'type', None) == 'paragraph' and getattr(block, 'text', ''):
            return block.text
    return None


def truncate(text: str, limit: int = EXCERPT_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def extract_excerpt(story) -> str:
    if story.excerpt:
        return story.excerpt
    text = first_paragraph(story.content)
    return truncate(text) if text else ''


def describe(story) -> str:
    if story.excerpt:
        return story.excerpt
    text = first_paragraph(story.content)
    return text[:DESCRIPTION_LENGTH] if text else ''


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_date(value: Optional[datetime], lang: str = 'en', with_time: bool = False) -> str:
    if value is None:
        return ''
    value = _as_utc(value)
    if lang == 'zh':
        label = f'{value.year}年{value.month}月{value.day}日'
        if with_time:
            label += f' {value:%H:%M}'
        return label
    label = f'{_MONTHS_EN[value.month - 1]} {value.day}, {value.year}'
    if with_time:
        label += f' at {value:%I:%M %p}'
    return label


def display_date(story) -> Optional[datetime]:
    return story.published_at or story.created_at
