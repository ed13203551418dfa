"""
Minimal synchronous event emitter shared by the schedulers.

Listeners run in registration order on the emitting call stack. A listener
that raises propagates to whoever triggered the emit.
"""

from typing import Any, Callable

Listener = Callable[..., Any]


class EventEmitter:
    """Registration-ordered publish/subscribe."""

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener | None = None):
        """
        Subscribe `listener` to `event`.

        Without a listener, returns a decorator:

            @retrier.on("attempt")
            def handle(attempt): ...
        """
        if listener is None:

            def deco(fn: Listener) -> Listener:
                self.on(event, fn)
                return fn

            return deco

        self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Subscribe a listener that is removed after its first call."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        self.on(event, wrapper)
        return wrapper

    def off(self, event: str, listener: Listener) -> None:
        """Remove one registration of `listener`; unknown listeners are ignored."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        for i, registered in enumerate(listeners):
            if registered is listener or getattr(registered, "listener", None) is listener:
                del listeners[i]
                break
        if not listeners:
            del self._listeners[event]

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of `event`. Returns True if any listener ran."""
        listeners = self._listeners.get(event)
        if not listeners:
            return False
        for listener in list(listeners):
            listener(*args)
        return True
