from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from . import Base, utcnow

STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class Post(Base):
    __tablename__ = 'posts'
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    title_zh = Column(String(300), nullable=True)
    slug = Column(String(300), nullable=False, index=True)
    content = Column(JSON().with_variant(JSONB(), 'postgresql'), nullable=False, default=list)
    excerpt = Column(Text, nullable=True)
    excerpt_zh = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    project_district = Column(String(100), nullable=True)
    cover_image_url = Column(String, nullable=True)
    author_name = Column(String(150), nullable=True)
    author_email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)

    post_tags = relationship('PostTag', order_by='PostTag.id', cascade='all, delete-orphan')
    images = relationship('PostImage', order_by='PostImage.display_order', cascade='all, delete-orphan')
