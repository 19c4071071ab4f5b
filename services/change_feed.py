"""
services/change_feed.py
────────────────────────────────────────────────────────────────────────
In-process push notifications for per-user documents.

* `subscribe()` registers a callback and returns an unsubscribe handle
* events reach a subscriber synchronously, in publish order
* per document: last write wins. A subscriber never sees a revision
  lower than one it already received for that document, and nothing
  after a delete
* no ordering guarantee across different documents
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Literal, Tuple

_LOG = logging.getLogger(__name__)

Op = Literal["created", "updated", "deleted"]
Unsubscribe = Callable[[], None]

# revision used for deletes so they always win
_TOMBSTONE = float("inf")


@dataclass(frozen=True)
class ChangeEvent:
    user_id: int
    collection: str
    document_id: int
    op: Op
    revision: int
    data: Dict[str, Any] | None = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "document_id": self.document_id,
            "op": self.op,
            "revision": self.revision,
            "data": self.data,
        }


@dataclass
class _Subscription:
    user_id: int
    callback: Callable[[ChangeEvent], None]
    collections: frozenset[str] | None
    seen: Dict[Tuple[str, int], float] = field(default_factory=dict)

    def offer(self, ev: ChangeEvent) -> bool:
        if self.collections is not None and ev.collection not in self.collections:
            return False
        key = (ev.collection, ev.document_id)
        rev = _TOMBSTONE if ev.op == "deleted" else ev.revision
        last = self.seen.get(key)
        if last is not None and rev <= last:
            _LOG.debug("drop stale %s/%s rev=%s", ev.collection, ev.document_id, ev.revision)
            return False
        self.seen[key] = rev
        return True


class ChangeFeed:
    def __init__(self) -> None:
        self._subs: Dict[int, _Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(
        self,
        user_id: int,
        callback: Callable[[ChangeEvent], None],
        collections: Iterable[str] | None = None,
    ) -> Unsubscribe:
        sub = _Subscription(
            user_id=user_id,
            callback=callback,
            collections=frozenset(collections) if collections is not None else None,
        )
        with self._lock:
            sub_id = next(self._ids)
            self._subs[sub_id] = sub

        def _unsubscribe() -> None:
            with self._lock:
                self._subs.pop(sub_id, None)

        return _unsubscribe

    def publish(self, ev: ChangeEvent) -> int:
        """Deliver `ev` to the owner's subscribers; returns how many got it."""
        with self._lock:
            targets = [s for s in self._subs.values() if s.user_id == ev.user_id]

        delivered = 0
        for sub in targets:
            if not sub.offer(ev):
                continue
            try:
                sub.callback(ev)
                delivered += 1
            except Exception:
                _LOG.exception("change-feed subscriber failed on %s/%s", ev.collection, ev.document_id)
        return delivered

    def subscriber_count(self, user_id: int | None = None) -> int:
        with self._lock:
            if user_id is None:
                return len(self._subs)
            return sum(1 for s in self._subs.values() if s.user_id == user_id)


feed = ChangeFeed()
