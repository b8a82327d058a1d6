"""Row change notifications for realtime board sync.

Changes are collected from SQLAlchemy flushes and published to subscribers
only once the surrounding transaction commits; a rollback discards them.
Subscribers are invoked from inside the commit hook, so they must not emit SQL
on the committing session. Mark state stale and re-fetch later instead.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "taskboard_pending_changes"


@dataclass(frozen=True)
class Change:
    """A committed row change.

    Attributes:
        table: Table name (e.g. "cards").
        operation: "insert", "update" or "delete".
        row: Column values of the row after the change (before, for deletes).
    """

    table: str
    operation: str
    row: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Subscription:
    table: str
    callback: Callable[[Change], None]
    column: str | None = None
    value: Any = None

    def matches(self, change: Change) -> bool:
        if change.table != self.table:
            return False
        if self.column is None:
            return True
        return change.row.get(self.column) == self.value


def _snapshot(obj: Any, operation: str) -> Change | None:
    state = inspect(obj)
    table = getattr(state.mapper.local_table, "name", None)
    if table is None:
        return None
    row = {attr.key: state.dict.get(attr.key) for attr in state.mapper.column_attrs}
    return Change(table=table, operation=operation, row=row)


class ChangeFeed:
    """In-process publish/subscribe hub keyed by table name."""

    def __init__(self):
        self._subscriptions: list[_Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        callback: Callable[[Change], None],
        column: str | None = None,
        value: Any = None,
    ) -> Callable[[], None]:
        """Register a callback for changes to a table.

        Args:
            table: Table to watch.
            callback: Called with each matching Change.
            column: Optional column to filter on (e.g. "board_id").
            value: Required value of ``column``.

        Returns:
            Callable: Unsubscribe function.
        """
        subscription = _Subscription(table=table, callback=callback, column=column, value=value)
        with self._lock:
            self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            with self._lock:
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

        return unsubscribe

    def publish(self, change: Change) -> None:
        """Deliver a change to every matching subscriber.

        Subscriber errors are logged and never propagate to the publisher.
        """
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(change)]
        for subscription in targets:
            try:
                subscription.callback(change)
            except Exception:
                logger.exception(
                    f"Change subscriber failed for {change.table} {change.operation}"
                )

    def bind(self, target: Any) -> None:
        """Install session listeners on a sessionmaker or Session class.

        Args:
            target: ``sessionmaker`` instance, ``Session`` subclass or session.
        """
        event.listen(target, "after_flush", self._collect)
        event.listen(target, "after_commit", self._dispatch)
        event.listen(target, "after_soft_rollback", self._discard)

    def _collect(self, session: Session, flush_context) -> None:
        pending = session.info.setdefault(_PENDING_KEY, [])
        for obj in session.new:
            change = _snapshot(obj, "insert")
            if change:
                pending.append(change)
        for obj in session.dirty:
            if not session.is_modified(obj, include_collections=False):
                continue
            change = _snapshot(obj, "update")
            if change:
                pending.append(change)
        for obj in session.deleted:
            change = _snapshot(obj, "delete")
            if change:
                pending.append(change)

    def _dispatch(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for change in pending:
            self.publish(change)

    def _discard(self, session: Session, previous_transaction) -> None:
        if previous_transaction.parent is None:
            session.info.pop(_PENDING_KEY, None)


# Shared feed bound to the application's session factory
change_feed = ChangeFeed()
