"""Cooperative cancellation shared by the discovery and sync threads."""

import threading


class CancelScope:
    """A cancellation signal that can be shared by many threads.

    A child scope is cancelled when it, or any of its ancestors, is
    cancelled. Cancelling a child never affects the parent. Cancellation is
    advisory: running work is expected to check ``cancelled`` between
    blocking steps.

    Usage::

        run_scope = CancelScope()
        lister_scope = run_scope.child()
        run_scope.cancel("interrupted")
        assert lister_scope.cancelled
    """

    def __init__(self, parent: "CancelScope | None" = None):
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    def child(self) -> "CancelScope":
        """Create a scope that is cancelled together with this one."""
        return CancelScope(parent=self)

    def cancel(self, reason: str = "cancelled") -> bool:
        """Cancel the scope. Returns True only for the first call."""
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            return True

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def reason(self) -> str | None:
        """Reason of the nearest cancelled scope, if any."""
        if self._event.is_set():
            return self._reason
        if self._parent is not None:
            return self._parent.reason
        return None

