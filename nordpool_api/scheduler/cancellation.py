"""
Cancellation context shared between a scheduled job and its waits.
"""

import asyncio
import threading
from typing import List, Optional


class CancellationToken:
    """
    One-shot cancellation flag that can be awaited with a timeout.

    ``cancel()`` is idempotent and may be called from any thread; waits running
    on the owning event loop are woken promptly.
    """

    def __init__(self):
        self._cancelled = False
        self._lock = threading.Lock()
        self._event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._children: List["CancellationToken"] = []
        self._parents: List["CancellationToken"] = []

    @classmethod
    def any_of(cls, *tokens: "CancellationToken") -> "CancellationToken":
        """
        A token that is cancelled as soon as any of ``tokens`` is.
        Call ``detach()`` once it is no longer needed.
        """
        linked = cls()
        linked._parents = list(tokens)
        for token in tokens:
            token._link(linked)
        return linked

    def detach(self) -> None:
        """Stop following the tokens this one was linked to."""
        for parent in self._parents:
            parent._unlink(self)
        self._parents = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            loop, event = self._loop, self._event
            children, self._children = self._children, []

        if event is not None:
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None

            if running is loop:
                event.set()
            elif not loop.is_closed():
                loop.call_soon_threadsafe(event.set)

        for child in children:
            child.cancel()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until cancelled or until ``timeout`` seconds have passed.

        Returns:
            True if the token is cancelled.
        """
        event = self._bind()
        if self._cancelled:
            return True
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        return self._cancelled

    def _bind(self) -> asyncio.Event:
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._event is None or self._loop is not loop:
                self._event = asyncio.Event()
                self._loop = loop
                if self._cancelled:
                    self._event.set()
            return self._event

    def _link(self, child: "CancellationToken") -> None:
        with self._lock:
            if not self._cancelled:
                self._children.append(child)
                return
        child.cancel()

    def _unlink(self, child: "CancellationToken") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)
