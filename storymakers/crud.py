from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from .auth import create_access_token, generate_refresh_token, hash_password, hash_token, verify_password
from .models.posts import Post, STATUS_APPROVED, STATUS_PENDING
from .models.post_images import PostImage
from .models.profiles import Profile
from .models.session_tokens import SessionToken
from .models.tags import Tag, PostTag


def _utcnow():
    return datetime.now(timezone.utc)


# profiles & sessions

async def create_profile(session, email: str, password: str, role: str = 'contributor'):
    profile = Profile(email=email, hashed_password=hash_password(password), role=role)
    session.add(profile)
    await session.flush()
    return profile


async def get_profile(session, profile_id: int):
    q = await session.execute(select(Profile).where(Profile.id == profile_id))
    return q.scalars().first()


async def authenticate_profile(session, email: str, password: str, settings,
                               user_agent: str | None = None, ip: str | None = None):
    q = await session.execute(select(Profile).where(Profile.email == email))
    profile = q.scalars().first()
    if not profile or not verify_password(password, profile.hashed_password):
        return None, None
    access = create_access_token({'id': profile.id, 'email': profile.email}, settings)
    refresh = generate_refresh_token()
    st = SessionToken(
        profile_id=profile.id,
        token_hash=hash_token(refresh),
        user_agent=user_agent,
        ip=ip,
        expires_at=_utcnow() + timedelta(days=settings.refresh_token_ttl_days),
    )
    session.add(st)
    await session.flush()
    return profile, {'access_token': access, 'token_type': 'bearer', 'refresh_token': refresh}


async def revoke_refresh_token(session, refresh_token: str) -> bool:
    q = await session.execute(select(SessionToken).where(
        SessionToken.token_hash == hash_token(refresh_token),
        SessionToken.revoked_at.is_(None),
    ))
    st = q.scalars().first()
    if not st:
        return False
    st.revoked_at = _utcnow()
    await session.flush()
    return True


async def revoke_profile_sessions(session, profile_id: int) -> int:
    q = await session.execute(select(SessionToken).where(
        SessionToken.profile_id == profile_id,
        SessionToken.revoked_at.is_(None),
    ))
    tokens = q.scalars().all()
    now = _utcnow()
    for st in tokens:
        st.revoked_at = now
    await session.flush()
    return len(tokens)


# posts

async def insert_post(session, **fields):
    fields.setdefault('status', STATUS_PENDING)
    post = Post(**fields)
    session.add(post)
    await session.flush()
    return post


async def get_or_create_tag(session, name: str):
    q = await session.execute(select(Tag).where(Tag.name == name))
    tag = q.scalars().first()
    if tag:
        return tag
    try:
        async with session.begin_nested():
            tag = Tag(name=name)
            session.add(tag)
        return tag
    except IntegrityError:
        # a concurrent submission created the same name first
        q = await session.execute(select(Tag).where(Tag.name == name))
        return q.scalars().one()


async def link_tag(session, post_id: int, tag_id: int):
    q = await session.execute(select(PostTag).where(PostTag.post_id == post_id, PostTag.tag_id == tag_id))
    link = q.scalars().first()
    if link:
        return link
    link = PostTag(post_id=post_id, tag_id=tag_id)
    session.add(link)
    await session.flush()
    return link


async def insert_post_images(session, post_id: int, uploads: Iterable[tuple]):
    """uploads: (public_url, storage_path) pairs in display order"""
    records = [
        PostImage(post_id=post_id, image_url=url, storage_path=path, display_order=index)
        for index, (url, path) in enumerate(uploads)
    ]
    session.add_all(records)
    await session.flush()
    return records


def _post_query(with_images: bool = False):
    stmt = select(Post).options(selectinload(Post.post_tags).joinedload(PostTag.tag))
    if with_images:
        stmt = stmt.options(selectinload(Post.images))
    return stmt


async def list_posts(session, statuses: Sequence[str] = (STATUS_APPROVED,), district: Optional[str] = None,
                     limit: Optional[int] = None, with_images: bool = False) -> List[Post]:
    stmt = _post_query(with_images).where(Post.status.in_(list(statuses)))
    if district:
        stmt = stmt.where(Post.project_district.ilike(f'%{district}%'))
    stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc())
    if limit:
        stmt = stmt.limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def get_post(session, post_id: int, status: Optional[str] = None, with_images: bool = False):
    stmt = _post_query(with_images).where(Post.id == post_id)
    if status:
        stmt = stmt.where(Post.status == status)
    # refresh rows already in the identity map so relationships are loaded
    stmt = stmt.execution_options(populate_existing=True)
    res = await session.execute(stmt)
    return res.scalars().first()


async def update_post_status(session, post_id: int, status: str, now: datetime | None = None):
    q = await session.execute(select(Post).where(Post.id == post_id))
    post = q.scalars().first()
    if not post:
        return None
    now = now or _utcnow()
    post.status = status
    post.updated_at = now
    if status == STATUS_APPROVED and post.published_at is None:
        post.published_at = now
    await session.flush()
    return post
