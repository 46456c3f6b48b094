import logging
import os

from celery import Celery

from series_quiz.core.celery_settings import is_test_env
from series_quiz.core.config import settings


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v and v.strip() else default


BROKER_URL = _env("CELERY_BROKER_URL") or settings.redis_url
RESULT_BACKEND = _env("CELERY_RESULT_BACKEND") or BROKER_URL

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# IMPORTANT: the variable name MUST be `celery_app`
celery_app = Celery(
    "series_quiz",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
    include=["series_quiz.worker.series_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_track_started=True,
    result_extended=True,
    enable_utc=True,
    timezone="UTC",
)

if is_test_env():
    # run tasks inline, no broker needed
    celery_app.conf.update(task_always_eager=True, task_eager_propagates=True)

__all__ = ["celery_app"]
