"""Grocery list persistence.

``SqlGroceryListStore`` is the only code that touches ``grocery_list_items``.
Rows are decoded into ``GroceryListEntry`` on the way out, so the
aggregation code never sees ORM objects. Every write commits on its own and
is announced on the user's change channel once committed.
"""

import logging
from typing import Callable, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PersistenceFailure
from ..models import GroceryListItem
from ..schemas import GroceryListEntry, GroceryChangeEvent
from ..realtime.grocery_bus import notify_change

logger = logging.getLogger("mealcart.grocery")

ChangePublisher = Callable[[GroceryChangeEvent], None]


class SqlGroceryListStore:
    def __init__(self, db: Session, publish: Optional[ChangePublisher] = notify_change):
        self.db = db
        self.publish = publish

    # --- Reads ---

    def _rows(self, user_id: str, ids: Optional[list[str]] = None) -> list[GroceryListItem]:
        stmt = select(GroceryListItem).where(GroceryListItem.user_id == user_id)
        if ids is not None:
            stmt = stmt.where(GroceryListItem.id.in_(ids))
        return list(self.db.scalars(
            stmt.order_by(GroceryListItem.created_at.desc(), GroceryListItem.id)
        ).all())

    def list_entries(self, user_id: str) -> list[GroceryListEntry]:
        """Current snapshot of the user's list."""
        try:
            rows = self._rows(user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to read grocery list for {user_id}: {e}")
            raise PersistenceFailure("Failed to read grocery list", operation="select") from e

        entries = []
        for row in rows:
            try:
                entries.append(GroceryListEntry.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed grocery row {row.id}: {e}")
        return entries

    def get_entry(self, user_id: str, entry_id: str) -> Optional[GroceryListEntry]:
        for entry in self.list_entries(user_id):
            if entry.id == entry_id:
                return entry
        return None

    # --- Writes ---

    def _commit(self, operation: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Grocery list {operation} failed: {e}")
            raise PersistenceFailure(f"Grocery list {operation} failed", operation=operation) from e

    def _announce(self, event: GroceryChangeEvent):
        if self.publish is not None:
            self.publish(event)

    def insert_entry(self, user_id: str, entry: GroceryListEntry) -> GroceryListEntry:
        row = GroceryListItem(
            user_id=user_id,
            name=entry.name,
            name_normalized=entry.name_normalized,
            amount=entry.amount,
            unit=entry.unit,
            category=entry.category,
            is_checked=entry.is_checked,
        )
        try:
            self.db.add(row)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Grocery list insert failed: {e}")
            raise PersistenceFailure("Grocery list insert failed", operation="insert") from e
        self._commit("insert")

        saved = GroceryListEntry.model_validate(row)
        self._announce(GroceryChangeEvent(type="insert", user_id=user_id, entry=saved))
        return saved

    def update_entry(
        self,
        user_id: str,
        entry_id: str,
        *,
        amount: Optional[float] = None,
        is_checked: Optional[bool] = None,
    ) -> Optional[GroceryListEntry]:
        """Update amount and/or checked state. Returns None for an unknown id."""
        try:
            row = self.db.scalar(
                select(GroceryListItem).where(
                    GroceryListItem.id == entry_id,
                    GroceryListItem.user_id == user_id,
                )
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Grocery list update failed", operation="update") from e

        if row is None:
            return None
        if amount is not None:
            row.amount = amount
        if is_checked is not None:
            row.is_checked = is_checked
        self._commit("update")

        saved = GroceryListEntry.model_validate(row)
        self._announce(GroceryChangeEvent(type="update", user_id=user_id, entry=saved))
        return saved

    def set_checked(self, user_id: str, ids: list[str], is_checked: bool) -> int:
        if not ids:
            return 0
        try:
            rows = self._rows(user_id, ids)
            for row in rows:
                row.is_checked = is_checked
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Grocery list update failed", operation="update") from e
        self._commit("update")

        for row in rows:
            self._announce(GroceryChangeEvent(
                type="update", user_id=user_id, entry=GroceryListEntry.model_validate(row)
            ))
        return len(rows)

    def delete_entries(self, user_id: str, ids: list[str]) -> int:
        if not ids:
            return 0
        try:
            rows = self._rows(user_id, ids)
            deleted = [row.id for row in rows]
            for row in rows:
                self.db.delete(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Grocery list delete failed", operation="delete") from e
        self._commit("delete")

        if deleted:
            self._announce(GroceryChangeEvent(type="delete", user_id=user_id, ids=deleted))
        return len(deleted)
