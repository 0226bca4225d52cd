"""
HTML rendering for stories.

Every piece of stored or submitted text goes through `esc` before it is placed
into markup. Rendering is deterministic: the same story and image list always
produce the same string.
"""
import html
import json
from typing import Iterable, List, Optional

from .content import describe, display_date, extract_excerpt, format_date
from .language import DEFAULT_LANGUAGE, label, language_link
from .schemas.posts import HeadingBlock, ImageBlock, ParagraphBlock

DEFAULT_HEADING_LEVEL = 2
COMPACT_TAG_LIMIT = 3
SITE_NAME = 'StoryMakers Taiwan'
SITE_NAME_ZH = '故事造城'


def esc(value) -> str:
    if value is None:
        return ''
    return html.escape(str(value), quote=True)


def story_link(story_id, lang: str = DEFAULT_LANGUAGE) -> str:
    return language_link(f'/story.html?id={story_id}', lang)


def _sorted_images(images) -> list:
    return sorted(images or [], key=lambda img: img.display_order)


def _render_image_record(img) -> str:
    out = f'<img src="{esc(img.image_url)}" alt="{esc(img.caption or "")}" class="story-content-image" />'
    if img.caption:
        out += f'<p class="story-image-caption">{esc(img.caption)}</p>'
    return out


def render_content(blocks, images=None) -> str:
    """Render content blocks in order.

    Image blocks take the next image record (ascending display_order) while
    any remain and only then fall back to their own `src`. Unknown block
    types render nothing.
    """
    queue = _sorted_images(images)
    cursor = 0
    parts = []
    for block in blocks or []:
        if isinstance(block, ParagraphBlock):
            parts.append(f'<p>{esc(block.text)}</p>')
        elif isinstance(block, HeadingBlock):
            level = block.level if block.level in range(1, 7) else DEFAULT_HEADING_LEVEL
            parts.append(f'<h{level}>{esc(block.text)}</h{level}>')
        elif isinstance(block, ImageBlock):
            if cursor < len(queue):
                parts.append(_render_image_record(queue[cursor]))
                cursor += 1
            elif block.src:
                parts.append(f'<img src="{esc(block.src)}" alt="{esc(block.alt or "")}" class="story-content-image" />')
        # anything else is a block type from a newer writer: skip it
    return ''.join(parts)


def _cover_style(url: Optional[str]) -> str:
    return f"background-image: url('{esc(url)}');" if url else ''


def _tag_chips(tags: Iterable[str], limit: Optional[int] = None) -> str:
    tags = list(tags)
    if limit is not None:
        tags = tags[:limit]
    return ''.join(f'<span class="story-tag">{esc(tag)}</span>' for tag in tags)


def render_story_card(story, tag_limit: Optional[int] = None, lang: str = DEFAULT_LANGUAGE,
                      show_localized_excerpt: bool = True) -> str:
    title_zh = f'<h4 class="story-title-zh">{esc(story.title_zh)}</h4>' if story.title_zh else ''
    excerpt_zh = ''
    if show_localized_excerpt and story.excerpt_zh:
        excerpt_zh = f'<p class="story-excerpt-zh">{esc(story.excerpt_zh)}</p>'
    return (
        '<div class="card story-card fade-in">'
        f'<div class="story-cover" style="{_cover_style(story.cover_image_url)}"></div>'
        '<div class="story-card-content">'
        '<div class="story-meta">'
        f'<span class="story-date">{esc(format_date(display_date(story), lang))}</span>'
        f'<div class="story-tags">{_tag_chips(story.tags, tag_limit)}</div>'
        '</div>'
        f'<h3 class="story-title">{esc(story.title)}</h3>'
        f'{title_zh}'
        f'<p class="story-excerpt">{esc(extract_excerpt(story))}</p>'
        f'{excerpt_zh}'
        f'<a href="{esc(story_link(story.id, lang))}" class="btn btn-primary">{esc(label("read_story", lang))}</a>'
        '</div>'
        '</div>'
    )


def render_story_cards(stories, tag_limit: Optional[int] = None, lang: str = DEFAULT_LANGUAGE,
                       show_localized_excerpt: bool = True) -> str:
    return ''.join(
        render_story_card(story, tag_limit=tag_limit, lang=lang, show_localized_excerpt=show_localized_excerpt)
        for story in stories
    )


def render_compact_cards(stories, lang: str = DEFAULT_LANGUAGE) -> str:
    return render_story_cards(stories, tag_limit=COMPACT_TAG_LIMIT, lang=lang, show_localized_excerpt=False)


def render_message(message: str, link: Optional[str] = None, link_label: Optional[str] = None,
                   raw: bool = False) -> str:
    """Inline notice used in place of a listing or a story; `raw` is for trusted label markup"""
    body = message if raw else esc(message)
    out = f'<div class="notice"><p>{body}</p>'
    if link:
        out += f'<a href="{esc(link)}" class="btn btn-primary">{esc(link_label or link)}</a>'
    return out + '</div>'


def render_story_detail(story, lang: str = DEFAULT_LANGUAGE) -> str:
    title_zh = f'<h2 class="story-title-main-zh">{esc(story.title_zh)}</h2>' if story.title_zh else ''
    cover = ''
    if story.cover_image_url:
        cover = f'<div class="story-cover-large" style="{_cover_style(story.cover_image_url)}"></div>'
    return (
        '<article class="story-detail">'
        '<header class="story-header">'
        '<div class="story-meta">'
        f'<span class="story-date">{esc(format_date(display_date(story), lang))}</span>'
        f'<div class="story-tags">{_tag_chips(story.tags)}</div>'
        '</div>'
        f'<h1 class="story-title-main">{esc(story.title)}</h1>'
        f'{title_zh}'
        '</header>'
        f'{cover}'
        f'<div class="story-content">{render_content(story.content, story.images)}</div>'
        f'<a href="/stories" class="btn btn-outline back-link">{esc(label("back_to_stories", lang))}</a>'
        '</article>'
    )


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def article_schema(story, site_url: str) -> dict:
    page_url = f'{site_url}/story.html?id={story.id}'
    organization = {'@type': 'Organization', 'name': SITE_NAME, 'alternateName': SITE_NAME_ZH}
    published = story.published_at or story.created_at
    schema = {
        '@context': 'https://schema.org',
        '@type': 'Article',
        'headline': story.title,
        'description': describe(story),
        'image': story.cover_image_url or f'{site_url}/assets/images/og-image.jpg',
        'datePublished': _iso(published),
        'dateModified': _iso(story.updated_at or published),
        'author': organization,
        'publisher': dict(organization, logo={
            '@type': 'ImageObject',
            'url': f'{site_url}/assets/images/logo.png',
        }),
        'mainEntityOfPage': {'@type': 'WebPage', '@id': page_url},
    }
    if story.title_zh:
        schema['alternativeHeadline'] = story.title_zh
    if story.tags:
        schema['keywords'] = ', '.join(story.tags)
    return schema


def render_article_head(story, site_url: str) -> str:
    description = describe(story)
    page_url = f'{site_url}/story.html?id={story.id}'
    payload = json.dumps(article_schema(story, site_url), ensure_ascii=False).replace('</', '<\\/')
    meta = [
        f'<title>{esc(story.title)} | {SITE_NAME} | {SITE_NAME_ZH}</title>',
        f'<meta property="og:title" content="{esc(story.title)}" />',
        f'<meta property="og:url" content="{esc(page_url)}" />',
        f'<meta name="twitter:title" content="{esc(story.title)}" />',
        f'<link rel="canonical" href="{esc(page_url)}" />',
    ]
    if description:
        meta.append(f'<meta property="og:description" content="{esc(description)}" />')
        meta.append(f'<meta name="twitter:description" content="{esc(description)}" />')
    if story.cover_image_url:
        meta.append(f'<meta property="og:image" content="{esc(story.cover_image_url)}" />')
        meta.append(f'<meta name="twitter:image" content="{esc(story.cover_image_url)}" />')
    meta.append(f'<script type="application/ld+json" id="article-schema">{payload}</script>')
    return ''.join(meta)


def _moderation_excerpt(story) -> str:
    if story.excerpt:
        return story.excerpt
    if story.content:
        text = getattr(story.content[0], 'text', None)
        if text:
            return text[:150]
    return 'No excerpt'


def render_moderation_card(story) -> str:
    status_class = story.status if story.status in ('approved', 'rejected') else ''
    tags = ', '.join(story.tags) if story.tags else 'No tags'
    meta = [
        f'<span class="status-badge status-{esc(story.status)}">{esc(story.status.upper())}</span>',
        f'<span>Submitted: {esc(format_date(story.created_at, "en", with_time=True))}</span>',
    ]
    if story.author_name:
        meta.append(f'<span>Author: {esc(story.author_name)}</span>')
    if story.author_email:
        meta.append(f'<span>Email: {esc(story.author_email)}</span>')
    actions = []
    if story.status != 'approved':
        actions.append(
            f'<form method="post" action="/admin/posts/{story.id}/approve">'
            f'<button id="approve-{story.id}" class="btn btn-primary">Approve</button></form>'
        )
    if story.status != 'rejected':
        actions.append(
            f'<form method="post" action="/admin/posts/{story.id}/reject">'
            f'<button id="reject-{story.id}" class="btn btn-secondary">Reject</button></form>'
        )
    actions.append(f'<a href="/story.html?id={story.id}" class="btn btn-outline" target="_blank">View Full Story</a>')
    title_zh = f'<h4 class="post-title-zh">{esc(story.title_zh)}</h4>' if story.title_zh else ''
    return (
        f'<div class="post-item {status_class}">'
        f'<div class="post-meta">{"".join(meta)}</div>'
        f'<h3>{esc(story.title)}</h3>'
        f'{title_zh}'
        f'<p class="post-excerpt">{esc(_moderation_excerpt(story))}...</p>'
        f'<p class="post-tags"><strong>Tags:</strong> {esc(tags)}</p>'
        f'<p class="post-district"><strong>District:</strong> {esc(story.project_district or "N/A")}</p>'
        f'<div class="post-actions">{"".join(actions)}</div>'
        '</div>'
    )


def render_moderation_list(stories: List) -> str:
    if not stories:
        return '<p class="empty-state">No submissions to review.</p>'
    return ''.join(render_moderation_card(story) for story in stories)


def render_page(body: str, title: str = SITE_NAME, head: str = '', lang: str = DEFAULT_LANGUAGE) -> str:
    html_lang = 'zh-Hant' if lang == 'zh' else 'en'
    if '<title>' not in head:
        head = f'<title>{esc(title)}</title>' + head
    return (
        '<!DOCTYPE html>'
        f'<html lang="{html_lang}"><head><meta charset="utf-8" />'
        '<meta name="viewport" content="width=device-width, initial-scale=1" />'
        f'{head}</head><body><main>{body}</main></body></html>'
    )


def render_submit_form(lang: str = DEFAULT_LANGUAGE) -> str:
    def field(name: str, key: str, control: str) -> str:
        return f'<label for="{name}">{esc(label(key, lang))}</label>{control}'

    return (
        f'<h1>{esc(label("submit_story", lang))}</h1>'
        '<form id="story-form" method="post" action="/submit" enctype="multipart/form-data">'
        + field('title', 'field_title', '<input id="title" name="title" type="text" required />')
        + field('content', 'field_content', '<textarea id="content" name="content" rows="12" required></textarea>')
        + field('project_district', 'field_district',
                '<input id="project_district" name="project_district" type="text" value="Shilin" />')
        + field('tags', 'field_tags', '<input id="tags" name="tags" type="text" />')
        + field('author_name', 'field_author_name', '<input id="author_name" name="author_name" type="text" />')
        + field('author_email', 'field_author_email', '<input id="author_email" name="author_email" type="email" />')
        + field('photos', 'field_photos', '<input id="photos" name="photos" type="file" accept="image/*" multiple />')
        + '<label class="checkbox"><input id="rights_owned" name="rights_owned" type="checkbox" value="true" required /> '
        f'{esc(label("rights_confirm", lang))}</label>'
        f'<button type="submit" class="btn btn-primary">{esc(label("submit_button", lang))}</button>'
        '</form>'
    )
