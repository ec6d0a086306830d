from celery import Celery

from stakeledger.config import settings

celery_app = Celery(
    "stakeledger",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["stakeledger.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    # One snapshot run at a time per worker; runs are long and rate limited
    worker_prefetch_multiplier=1,
    beat_schedule={
        "take-staking-snapshot": {
            "task": "take_staking_snapshot",
            "schedule": settings.snapshot_interval_minutes * 60.0,
            "kwargs": {"use_incremental": True},
        },
    },
)
