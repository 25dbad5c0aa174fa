"""Frame callback scheduling.

:class:`FrameScheduler` behaves like a browser's ``requestAnimationFrame``: a
callback registered now runs once, on the next frame, and receives that
frame's timestamp.  The PsychoPy trial pumps it once per ``win.flip()``; tests
and the dry-run pump it with synthetic timestamps.
"""
from __future__ import annotations

import itertools
from typing import Callable, Dict

FrameCallback = Callable[[float], None]


class FrameScheduler:
    """Queue of one-shot per-frame callbacks addressed by integer handles."""

    def __init__(self) -> None:
        self._callbacks: Dict[int, FrameCallback] = {}
        self._handles = itertools.count(1)

    def request_frame(self, callback: FrameCallback) -> int:
        """Run ``callback`` on the next dispatched frame and return its handle."""

        handle = next(self._handles)
        self._callbacks[handle] = callback
        return handle

    def cancel_frame(self, handle: int | None) -> None:
        """Revoke a pending callback; unknown or spent handles are ignored."""

        if handle is not None:
            self._callbacks.pop(handle, None)

    @property
    def pending(self) -> bool:
        return bool(self._callbacks)

    def dispatch(self, timestamp: float) -> int:
        """Run every callback registered before this call; return how many ran.

        Callbacks registered while dispatching wait for the next frame, and a
        callback cancelled by an earlier one in the same batch does not run.
        """

        batch = list(self._callbacks)
        ran = 0
        for handle in batch:
            callback = self._callbacks.pop(handle, None)
            if callback is None:
                continue
            callback(timestamp)
            ran += 1
        return ran


__all__ = ["FrameCallback", "FrameScheduler"]
