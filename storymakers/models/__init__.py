from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


# Import models to register tables
from .profiles import Profile  # noqa: F401,E402
from .session_tokens import SessionToken  # noqa: F401,E402
from .posts import Post  # noqa: F401,E402
from .tags import Tag, PostTag  # noqa: F401,E402
from .post_images import PostImage  # noqa: F401,E402
