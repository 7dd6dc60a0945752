"""Background tasks for the store service.

Run one sweep by hand with:
    python -m services.store_service.tasks
"""

import asyncio
import sys

from libs.common.logging import configure_logging, get_logger
from libs.db.config import AsyncSessionLocal
from services.store_service.services.payment_ops import expire_stale_transactions

logger = get_logger(__name__)


async def expire_stale_payments() -> int:
    """Expire lapsed QRIS transactions and cancel their unpaid orders."""
    async with AsyncSessionLocal() as db:
        count = await expire_stale_transactions(db)
    logger.info("Expiry sweep finished: %d transaction(s) expired", count)
    return count


def main() -> int:
    configure_logging()
    try:
        asyncio.run(expire_stale_payments())
    except Exception:
        logger.exception("Expiry sweep failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
