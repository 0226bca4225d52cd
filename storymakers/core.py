import logging

from prometheus_client import Counter, start_http_server
from pythonjsonlogger.json import JsonFormatter

logger = logging.getLogger(__name__)

STORIES_SUBMITTED = Counter('storymakers_stories_submitted_total', 'Stories accepted for review')
UPLOADS_FAILED = Counter('storymakers_uploads_failed_total', 'Story photos skipped during submission')
TAGS_SKIPPED = Counter('storymakers_tags_skipped_total', 'Tags skipped during submission')
MODERATION_TRANSITIONS = Counter(
    'storymakers_moderation_transitions_total', 'Story status changes', ['status']
)


def configure_logging(name: str = 'storymakers', level: int = logging.INFO) -> logging.Logger:
    """Attach a JSON stream handler to the application logger once"""
    app_logger = logging.getLogger(name)
    if not any(getattr(h, '_storymakers', False) for h in app_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
        handler._storymakers = True
        app_logger.addHandler(handler)
    app_logger.setLevel(level)
    return app_logger


def init_metrics(port: int = 0):
    """Initialize Prometheus metrics server; port 0 leaves it off"""
    if not port:
        return
    try:
        start_http_server(port)
        logger.info(f'Prometheus metrics server started on port {port}')
    except OSError as e:
        logger.warning(f'Prometheus start failed: {e}')
