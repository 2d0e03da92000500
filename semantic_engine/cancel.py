"""
semantic_engine/cancel.py
Cooperative cancellation for long pipeline runs. The caller keeps the
token and may cancel from another thread; layers poll it between batches.
"""

import threading
from typing import Optional

from semantic_engine.errors import PipelineCancelled


class CancellationToken:

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = '') -> None:
        if self._event.is_set():
            raise PipelineCancelled(f"Cancelled{' during ' + where if where else ''}")


def check(token: Optional[CancellationToken], where: str = '') -> None:
    """No-op when no token was supplied."""
    if token is not None:
        token.raise_if_cancelled(where)
