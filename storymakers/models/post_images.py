from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from . import Base, utcnow


class PostImage(Base):
    __tablename__ = 'post_images'
    __table_args__ = (UniqueConstraint('post_id', 'display_order', name='uix_post_image_order'),)
    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey('posts.id', ondelete='CASCADE'), index=True, nullable=False)
    image_url = Column(String, nullable=False)
    storage_path = Column(String, nullable=False)
    caption = Column(String(500), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
