"""Persistence helpers for user records."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from app.models.user import USER_SORT_KEY, UserRecord, user_partition_key

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Operations shared by ``SQLiteStore`` and ``DynamoDBClient``."""

    def put_item(self, item: dict[str, Any]) -> None: ...

    def put_item_if_absent(self, item: dict[str, Any]) -> dict[str, Any]: ...

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[dict[str, Any]]: ...

    def update_fields(
        self, *, partition_key: str, sort_key: str, values: dict[str, Any]
    ) -> Optional[dict[str, Any]]: ...

    def increment_below_limit(
        self,
        *,
        partition_key: str,
        sort_key: str,
        counter: str,
        limit: int,
        unless_flag: str,
    ) -> tuple[bool, Optional[dict[str, Any]]]: ...

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[dict[str, Any]]: ...

    def find_item(self, *, sort_key: str, field: str, value: Any) -> Optional[dict[str, Any]]: ...


class UserService:
    """Get-or-create and targeted updates for ``user#<id>`` records."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self, user_id: str) -> Optional[UserRecord]:
        item = self._store.get_item(
            partition_key=user_partition_key(user_id), sort_key=USER_SORT_KEY
        )
        return UserRecord.from_item(item) if item else None

    def get_or_create(
        self,
        user_id: str,
        *,
        is_anonymous: bool = True,
        display_name: str | None = None,
        email: str | None = None,
    ) -> UserRecord:
        """Return the stored record, creating a zero-usage one when absent.

        Profile fields supplied for an existing user (for example after an
        anonymous user links an account) are merged in.
        """
        default = UserRecord(
            id=user_id,
            is_anonymous=is_anonymous,
            display_name=display_name,
            email=email,
        )
        stored = UserRecord.from_item(self._store.put_item_if_absent(default.to_item()))

        updates: dict[str, Any] = {}
        if stored.is_anonymous and not is_anonymous:
            updates["is_anonymous"] = False
        if display_name and display_name != stored.display_name:
            updates["display_name"] = display_name
        if email and email != stored.email:
            updates["email"] = email
        if updates:
            logger.info("Updating profile fields %s for user %s", sorted(updates), user_id)
            return self._update(user_id, updates) or stored
        return stored

    def set_payment_customer_id(self, user_id: str, customer_id: str) -> Optional[UserRecord]:
        return self._update(user_id, {"payment_customer_id": customer_id})

    def set_subscription_status(self, user_id: str, is_subscribed: bool) -> Optional[UserRecord]:
        return self._update(user_id, {"is_subscribed": is_subscribed})

    def find_by_payment_customer_id(self, customer_id: str) -> Optional[UserRecord]:
        item = self._store.find_item(
            sort_key=USER_SORT_KEY, field="payment_customer_id", value=customer_id
        )
        return UserRecord.from_item(item) if item else None

    def _update(self, user_id: str, values: dict[str, Any]) -> Optional[UserRecord]:
        item = self._store.update_fields(
            partition_key=user_partition_key(user_id),
            sort_key=USER_SORT_KEY,
            values=values,
        )
        return UserRecord.from_item(item) if item else None


__all__ = ["DocumentStore", "UserService"]
