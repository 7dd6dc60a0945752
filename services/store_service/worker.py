"""ARQ worker for the store's scheduled jobs.

Run with:
    arq services.store_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def task_expire_stale_payments(ctx: dict):
    from services.store_service.tasks import expire_stale_payments

    logger.info("Running: expire_stale_payments")
    return await expire_stale_payments()


class WorkerSettings:
    redis_settings = get_redis_settings()

    functions = [task_expire_stale_payments]

    # QRIS codes live for minutes, so sweep every minute
    cron_jobs = [
        cron(
            task_expire_stale_payments,
            minute=set(range(60)),
            run_at_startup=True,
        ),
    ]
