from celery import Celery

from loggers import get_logger
from src.main.config import config
from src.main.sentry import init_sentry

init_sentry()
logger = get_logger(__name__)

# Redis already backs the token store, so it doubles as broker unless told otherwise
broker_url = config.celery.CELERY_BROKER_URL or config.redis.dsn
result_backend = config.celery.CELERY_RESULT_BACKEND or config.redis.dsn

celery_app = Celery(__name__, broker=broker_url, backend=result_backend)

celery_app.conf.broker_connection_retry_on_startup = True
celery_app.conf.update(
    task_create_missing_queues=True,
    task_acks_late=True,
    task_send_sent_event=True,
    task_track_started=True,
    task_time_limit=300,
    task_always_eager=config.celery.CELERY_TASK_ALWAYS_EAGER,
    task_ignore_result=True,
)

celery_app.conf.update(
    include=[
        "src.user.auth.tasks",
    ],
    timezone="UTC",
    enable_utc=True,
)
