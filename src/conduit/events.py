"""Observer channel — topic-keyed callbacks for app-level events.

The app forwards listener faults here under the ``"error"`` topic, and
user code may publish its own topics through the same channel::

    app.on("error", lambda exc: log.warning("listener failed: %s", exc))

Free-threading safety:
    - Subscriber lists are copied under a Lock before delivery
    - Callbacks run outside the lock, so they may subscribe or unsubscribe
"""

import threading
from collections.abc import Callable
from typing import Any, TypeAlias

Callback: TypeAlias = Callable[..., Any]


class EventChannel:
    """Synchronous publish/subscribe keyed by topic name.

    ``emit()`` calls every callback registered for the topic, in
    subscription order, and returns whether any callback was called.
    Emitting ``"error"`` with no subscriber re-raises the error, so
    listener faults are never lost silently.
    """

    __slots__ = ("_listeners", "_lock")

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callback]] = {}
        self._lock = threading.Lock()

    def on(self, topic: str, callback: Callback) -> Callback:
        """Subscribe *callback* to *topic*. Returns the callback."""
        with self._lock:
            self._listeners.setdefault(topic, []).append(callback)
        return callback

    def off(self, topic: str, callback: Callback) -> None:
        """Remove one subscription of *callback* from *topic*, if present."""
        with self._lock:
            callbacks = self._listeners.get(topic)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._listeners[topic]

    def listeners(self, topic: str) -> list[Callback]:
        """Return a snapshot of the callbacks subscribed to *topic*."""
        with self._lock:
            return list(self._listeners.get(topic, ()))

    def emit(self, topic: str, *args: Any) -> bool:
        """Call every subscriber of *topic* with *args*.

        Raises:
            BaseException: The first argument, when *topic* is ``"error"``
                and nobody is subscribed to it.
        """
        callbacks = self.listeners(topic)
        if not callbacks:
            if topic == "error" and args and isinstance(args[0], BaseException):
                raise args[0]
            return False
        for callback in callbacks:
            callback(*args)
        return True
