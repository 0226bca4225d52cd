from sqlalchemy import Column, Integer, String, DateTime, func
from . import Base, utcnow

ROLE_ADMIN = 'admin'


class Profile(Base):
    __tablename__ = 'profiles'
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String(50), nullable=False, default='contributor')
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
