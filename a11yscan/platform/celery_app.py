from celery import Celery
from kombu import Queue

from a11yscan.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - scan.orchestration: one task per scan, running the crawl, the reports
      and the notifications end to end
    - default: anything not routed explicitly

    A scan holds a headless browser for its whole run, so workers take one
    task at a time.
    """
    celery_app = Celery(
        "a11yscan",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,

        task_routes={
            "a11yscan.features.scan.workers.tasks.run_scan": {"queue": "scan.orchestration"},
        },

        task_queues=(
            Queue("default"),
            Queue("scan.orchestration"),
        ),
        task_default_queue="default",

        worker_prefetch_multiplier=1,

        # Acknowledge after the task completes
        task_acks_late=True,
        task_reject_on_worker_lost=True,
    )

    celery_app.autodiscover_tasks(["a11yscan.features.scan.workers"])

    return celery_app


celery_app = create_celery_app()
