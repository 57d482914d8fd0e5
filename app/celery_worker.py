"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend, plus the
beat schedule for periodic maintenance.

Run:
    celery -A app.celery_worker worker --loglevel=info
    celery -A app.celery_worker beat --loglevel=info
"""

from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'food_ordering_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['app.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,

    beat_schedule={
        'expire-pending-orders': {
            'task': 'app.tasks.expire_pending_orders',
            'schedule': 300.0,  # every 5 minutes
        },
    },
)


if __name__ == '__main__':
    celery_app.start()
