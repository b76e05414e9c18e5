"""Per-user daily usage limits."""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import UsageLimitConfig
from ..models.turn import UsageRecord
from .storage import USAGE_TABLE, Database

logger = logging.getLogger(__name__)


def utc_today() -> str:
    """Current UTC calendar date as ``YYYY-MM-DD``."""
    return datetime.now(timezone.utc).date().isoformat()


class UsageLimiter:
    """Counts messages per user per calendar day.

    Counters roll over lazily: a stale date is reset the next time the user's
    record is read or written.
    """

    def __init__(self, database: Database, today: Callable[[], str] = utc_today):
        self.database = database
        self.today = today

    async def get_record(self, user_id: str) -> Optional[UsageRecord]:
        records = await self.database.get(USAGE_TABLE, {"userId": user_id})
        if not records:
            return None
        return UsageRecord.from_dict(records[0])

    async def is_allowed(self, user_id: str, max_per_day: int) -> bool:
        """Return whether the user may send another message today."""
        record = await self.get_record(user_id)
        if record is None:
            return True

        today = self.today()
        if record.last_reset_date != today:
            await self.database.set(
                USAGE_TABLE, {"userId": user_id}, {"dailyCount": 0, "lastResetDate": today}
            )
            logger.debug(f"Reset daily usage for user {user_id}")
            return True

        return record.daily_count < max_per_day

    async def record_use(self, user_id: str) -> UsageRecord:
        """Count one message for the user."""
        today = self.today()
        record = await self.get_record(user_id)

        if record is None:
            record = UsageRecord(user_id=user_id, daily_count=1, last_reset_date=today)
            await self.database.create(USAGE_TABLE, record.to_dict())
        elif record.last_reset_date != today:
            record = UsageRecord(user_id=user_id, daily_count=1, last_reset_date=today)
            await self.database.set(
                USAGE_TABLE, {"userId": user_id}, {"dailyCount": 1, "lastResetDate": today}
            )
        else:
            record.daily_count += 1
            await self.database.set(
                USAGE_TABLE, {"userId": user_id}, {"dailyCount": record.daily_count}
            )

        logger.debug(f"User {user_id} has used {record.daily_count} messages today")
        return record

    async def check_and_consume(self, user_id: str, limit: UsageLimitConfig) -> bool:
        """Check the limit and count the message if allowed."""
        if not limit.enabled:
            return True
        if not await self.is_allowed(user_id, limit.max_messages_per_user):
            logger.info(f"User {user_id} reached the daily limit")
            return False
        await self.record_use(user_id)
        return True
