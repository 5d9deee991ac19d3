"""Cancellation flag shared between the REPL and an in-flight exchange."""
from __future__ import annotations

import threading
from enum import IntEnum


class AbortState(IntEnum):
    NONE = 0
    CTRLC = 1
    CTRLD = 2


class AbortSignal:
    """Thread-safe tri-state flag: ``none``, ``ctrlc`` or ``ctrld``.

    Written from the input-reading side and polled by the streaming side. It holds
    only the latest state, so every new submission starts from :meth:`reset`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = AbortState.NONE

    @property
    def state(self) -> AbortState:
        with self._lock:
            return self._state

    def aborted(self) -> bool:
        return self.state is not AbortState.NONE

    def aborted_ctrlc(self) -> bool:
        return self.state is AbortState.CTRLC

    def aborted_ctrld(self) -> bool:
        return self.state is AbortState.CTRLD

    def reset(self) -> None:
        self._set(AbortState.NONE)

    def set_ctrlc(self) -> None:
        self._set(AbortState.CTRLC)

    def set_ctrld(self) -> None:
        self._set(AbortState.CTRLD)

    def _set(self, state: AbortState) -> None:
        with self._lock:
            self._state = state


__all__ = ["AbortSignal", "AbortState"]
