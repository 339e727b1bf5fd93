"""
Celery configuration settings.

Broker and result backend for the out-of-process dispatcher
(DOC_PIPELINE_DISPATCHER=celery). Either give full URLs through
CELERY_BROKER / CELERY_RESULT_BACKEND or let them be assembled from the
host/port parts.

Dependencies: pydantic, pydantic_settings
System role: Task queue configuration for ingestion jobs
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CelerySettings(BaseSettings):
    """RabbitMQ broker, Redis results and ingestion task limits."""

    model_config = SettingsConfigDict(
        env_prefix="CELERY_",
        case_sensitive=False,
        extra="ignore",
    )

    broker: str | None = Field(default=None, description="Full broker URL; overrides the parts below")
    broker_host: str = Field(default="localhost")
    broker_port: int = Field(default=5672)
    broker_user: str = Field(default="guest")
    broker_password: str = Field(default="guest")
    broker_vhost: str = Field(default="/")

    result_backend: str | None = Field(default=None, description="Full result backend URL")
    result_backend_host: str = Field(default="localhost")
    result_backend_port: int = Field(default=6379)
    result_backend_db: int = Field(default=0)

    ingestion_queue: str = Field(default="ingestion", description="Queue ingestion tasks are routed to")
    task_time_limit_seconds: int = Field(
        default=1800,
        ge=1,
        description="Hard limit for one ingestion task; a killed task leaves its job for the stale sweep",
    )
    timezone: str = Field(default="UTC")

    @property
    def broker_url(self) -> str:
        """Broker URL, explicit or built from the AMQP parts."""
        if self.broker:
            return self.broker
        return (
            f"amqp://{self.broker_user}:{self.broker_password}"
            f"@{self.broker_host}:{self.broker_port}/{self.broker_vhost}"
        )

    @property
    def result_backend_url(self) -> str:
        """Result backend URL, explicit or built from the Redis parts."""
        if self.result_backend:
            return self.result_backend
        return f"redis://{self.result_backend_host}:{self.result_backend_port}/{self.result_backend_db}"
