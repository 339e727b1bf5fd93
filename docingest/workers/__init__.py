"""
Celery workers module.

Out-of-process execution of ingestion jobs when DOC_PIPELINE_DISPATCHER=celery.

Dependencies: celery, docingest.configs
System role: Background task processing
"""

from celery import Celery
from dotenv import load_dotenv

from docingest.configs import get_settings

load_dotenv()

settings = get_settings()
celery_config = settings.celery

celery_app = Celery(
    "docingest",
    broker=celery_config.broker_url,
    backend=celery_config.result_backend_url,
    include=["docingest.workers.tasks.document_ingestion"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=celery_config.timezone,
    task_default_queue=celery_config.ingestion_queue,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_time_limit=celery_config.task_time_limit_seconds,
)
