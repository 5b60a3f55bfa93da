"""Disposal handles and a minimal observer mixin.

``subscribe()`` anywhere in the adapters returns a ``Subscription``;
callers keep it for as long as they want notifications and call
``dispose()`` (or leave a ``with`` block) to release it.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

# Signature: callback(kind, target_id). ``kind`` names what changed
# ("agents", "chats", "messages", "focus", "ui"); ``target_id`` is the
# affected agent or chat id when there is a single one.
ChangeCallback = Callable[[str, "str | None"], None]


class Subscription:
    """Idempotent disposal handle."""

    def __init__(self, dispose: Callable[[], object]) -> None:
        self._dispose = dispose
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._dispose()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()


class Observable:
    """Fan-out of change notifications to registered callbacks."""

    def __init__(self) -> None:
        self._observers: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        self._observers.append(callback)

        def _remove() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return Subscription(_remove)

    def _notify(self, kind: str, target_id: str | None = None) -> None:
        for callback in list(self._observers):
            try:
                callback(kind, target_id)
            except Exception:
                logger.exception("Observer failed handling %s change", kind)
