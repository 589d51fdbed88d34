"""Per-user quota enforcement for metered analyses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.models.user import USER_SORT_KEY, UserRecord, user_partition_key
from app.services.users import DocumentStore, UserService

logger = logging.getLogger(__name__)

DEFAULT_FREE_QUOTA = 5


class DenialReason(str, Enum):
    QUOTA_EXCEEDED = "QuotaExceeded"


@dataclass(slots=True)
class GateOutcome:
    """Result of a single ``check_and_consume`` call."""

    granted: bool
    user: UserRecord
    reason: Optional[DenialReason] = None


class UsageGate:
    """Grant or deny a metered request, consuming quota atomically.

    Subscribed users are never metered. For everyone else the increment is a
    conditional write, so two concurrent requests at ``quota - 1`` cannot both
    be granted.
    """

    def __init__(
        self,
        store: DocumentStore,
        users: UserService,
        *,
        quota: int = DEFAULT_FREE_QUOTA,
    ) -> None:
        self._store = store
        self._users = users
        self._quota = quota

    @property
    def quota(self) -> int:
        return self._quota

    def check_and_consume(self, user_id: str) -> GateOutcome:
        self._users.get_or_create(user_id)
        incremented, item = self._store.increment_below_limit(
            partition_key=user_partition_key(user_id),
            sort_key=USER_SORT_KEY,
            counter="usage_count",
            limit=self._quota,
            unless_flag="is_subscribed",
        )
        if item is None:
            raise RuntimeError(f"User record for {user_id} vanished during quota check.")
        user = UserRecord.from_item(item)

        if incremented or user.is_subscribed:
            logger.info(
                "Granted analysis for user %s (subscribed=%s, usage=%d/%d)",
                user_id,
                user.is_subscribed,
                user.usage_count,
                self._quota,
            )
            return GateOutcome(granted=True, user=user)

        logger.warning(
            "Usage limit reached for user %s (usage=%d/%d)",
            user_id,
            user.usage_count,
            self._quota,
        )
        return GateOutcome(
            granted=False,
            user=user,
            reason=DenialReason.QUOTA_EXCEEDED,
        )

    def remaining_for(self, user: UserRecord) -> Optional[int]:
        if user.is_subscribed:
            return None
        return max(0, self._quota - user.usage_count)


__all__ = ["DEFAULT_FREE_QUOTA", "DenialReason", "GateOutcome", "UsageGate"]
