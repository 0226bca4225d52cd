import os
from dataclasses import dataclass
from typing import Optional

PLACEHOLDER_PREFIX = 'YOUR_'
DEFAULT_DISTRICT = 'Shilin'


def _normalize_database_url(url: Optional[str]) -> Optional[str]:
    if url and url.startswith('postgresql://'):
        return url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return url


def is_placeholder(value: Optional[str]) -> bool:
    return not value or value.strip().upper().startswith(PLACEHOLDER_PREFIX)


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = 'HS256'
    access_token_expire_minutes: int = 60 * 24
    refresh_token_ttl_days: int = 30
    storage_backend: str = 's3'
    s3_bucket: Optional[str] = None
    s3_region: str = 'us-east-1'
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    media_root: str = 'static/post-images'
    media_url: str = '/static/post-images'
    site_url: str = 'https://storymakers.tw'
    metrics_port: int = 0

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            database_url=_normalize_database_url(os.getenv('DATABASE_URL')),
            # Prefer JWT_SECRET but support legacy JWT_SECRET_KEY
            jwt_secret=os.getenv('JWT_SECRET') or os.getenv('JWT_SECRET_KEY'),
            jwt_algorithm=os.getenv('JWT_ALGORITHM', 'HS256'),
            access_token_expire_minutes=int(os.getenv('ACCESS_TOKEN_EXPIRE_MINUTES', str(60 * 24))),
            refresh_token_ttl_days=int(os.getenv('REFRESH_TOKEN_TTL_DAYS', '30')),
            storage_backend=os.getenv('STORAGE_BACKEND', 's3').lower(),
            s3_bucket=os.getenv('AWS_S3_BUCKET') or os.getenv('AWS_S3_BUCKET_NAME'),
            s3_region=os.getenv('AWS_S3_REGION') or os.getenv('AWS_REGION', 'us-east-1'),
            aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            media_root=os.getenv('MEDIA_ROOT', 'static/post-images'),
            media_url=os.getenv('MEDIA_URL', '/static/post-images'),
            site_url=os.getenv('SITE_URL', 'https://storymakers.tw').rstrip('/'),
            metrics_port=int(os.getenv('METRICS_PORT', '0')),
        )

    def problems(self) -> list:
        """Return human-readable reasons this configuration cannot reach the backend"""
        found = []
        if is_placeholder(self.database_url):
            found.append('DATABASE_URL is missing or still a placeholder')
        if is_placeholder(self.jwt_secret):
            found.append('JWT_SECRET is missing or still a placeholder')
        if self.storage_backend == 's3':
            if is_placeholder(self.s3_bucket):
                found.append('AWS_S3_BUCKET is missing or still a placeholder')
        elif self.storage_backend == 'local':
            if not self.media_root:
                found.append('MEDIA_ROOT is empty')
        else:
            found.append(f'Unknown STORAGE_BACKEND {self.storage_backend!r}')
        return found
