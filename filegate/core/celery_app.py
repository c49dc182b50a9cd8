"""
Celery application for the tenant provisioning workflow.

Workers consume a single queue (``settings.provisioning_queue``) with a
prefetch of one, so lifecycle steps for the registry are processed in the
order they were requested. Tasks are acknowledged only after they finish;
a worker lost mid-step hands the step to another worker, and every step is
safe to re-run.
"""

import structlog
from celery import Celery
from celery.signals import task_failure, task_retry, task_success

from filegate.config import settings

logger = structlog.get_logger(__name__)

TASK_MODULES = ["filegate.features.tenants.tasks"]

celery_app = Celery(
    "filegate",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=TASK_MODULES,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_default_queue=settings.provisioning_queue,
    task_routes={
        "filegate.features.tenants.tasks.*": {"queue": settings.provisioning_queue},
    },
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    # Container archival of a large tenant is the slowest step
    task_soft_time_limit=540,
    task_time_limit=600,
    result_expires=86_400,
    worker_send_task_events=True,
    task_send_sent_event=True,
)


def _third_party_id(kwargs: dict | None) -> str | None:
    return (kwargs or {}).get("third_party_id")


@task_success.connect
def log_task_success(sender=None, result=None, **kwargs):
    status = result.get("status") if isinstance(result, dict) else None
    logger.info("provisioning_task_succeeded", task=sender.name, status=status)


@task_retry.connect
def log_task_retry(sender=None, request=None, reason=None, **kwargs):
    logger.warning(
        "provisioning_task_retrying",
        task=sender.name,
        third_party_id=_third_party_id(getattr(request, "kwargs", None)),
        attempt=getattr(request, "retries", 0) + 1,
        reason=str(reason),
    )


@task_failure.connect
def log_task_failure(sender=None, exception=None, kwargs=None, **extra):
    logger.error(
        "provisioning_task_failed",
        task=sender.name,
        third_party_id=_third_party_id(kwargs),
        error=str(exception),
    )
