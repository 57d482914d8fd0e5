"""
Celery Tasks
Periodic maintenance for the order store.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from app.celery_worker import celery_app
from app.core.config import get_settings
from app.database import build_engine, build_session_maker
from app.services.orders import OrderService

logger = logging.getLogger(__name__)


async def _expire_pending_orders(timeout_minutes: int) -> int:
    if timeout_minutes <= 0:
        return 0

    # Each run gets its own engine: asyncio.run() opens a fresh event loop
    settings = get_settings()
    engine = build_engine(settings.database_url)
    try:
        session_maker = build_session_maker(engine)
        async with session_maker() as session:
            return await OrderService(session, settings=settings).expire_stale_orders(
                timedelta(minutes=timeout_minutes)
            )
    finally:
        await engine.dispose()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def expire_pending_orders(self, timeout_minutes: Optional[int] = None) -> dict:
    """
    Mark orders that never completed checkout as failed.

    Args:
        timeout_minutes: Age after which a pending_payment order is
            abandoned. Defaults to PENDING_PAYMENT_TIMEOUT_MINUTES;
            0 disables the sweep.
    """
    task_id = self.request.id
    timeout = (
        timeout_minutes if timeout_minutes is not None
        else get_settings().pending_payment_timeout_minutes
    )

    if timeout <= 0:
        logger.info(f"Task {task_id}: pending order expiry disabled")
        return {
            'task_id': task_id,
            'expired': 0,
            'timeout_minutes': timeout,
            'processing_time_seconds': 0.0,
        }

    start_time = time.time()

    expired = asyncio.run(_expire_pending_orders(timeout))

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"Task {task_id}: expired {expired} pending orders in {elapsed}s")
    return {
        'task_id': task_id,
        'expired': expired,
        'timeout_minutes': timeout,
        'processing_time_seconds': elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
