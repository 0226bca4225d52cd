from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from . import Base, utcnow


class Tag(Base):
    __tablename__ = 'tags'
    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class PostTag(Base):
    __tablename__ = 'post_tags'
    __table_args__ = (UniqueConstraint('post_id', 'tag_id', name='uix_post_tag'),)
    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey('posts.id', ondelete='CASCADE'), index=True, nullable=False)
    tag_id = Column(Integer, ForeignKey('tags.id', ondelete='CASCADE'), index=True, nullable=False)

    tag = relationship('Tag', lazy='joined')
