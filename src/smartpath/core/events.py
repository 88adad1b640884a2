"""Lifecycle events and output filters."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

__all__ = ["EventHub"]


class EventHub:
    """Named listeners (``trigger``) and named value transforms (``filter_with``)."""

    __slots__ = ("_listeners", "_filters")

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable]] = {}
        self._filters: Dict[str, List[Callable[[Any], Any]]] = {}

    def on(self, event: Any, listener: Callable) -> Callable:
        self._listeners.setdefault(str(event), []).append(listener)
        return listener

    def off(self, event: Any, listener: Optional[Callable] = None) -> None:
        key = str(event)
        if listener is None:
            self._listeners.pop(key, None)
            return
        listeners = self._listeners.get(key, [])
        if listener in listeners:
            listeners.remove(listener)

    def trigger(self, event: Any, *args: Any) -> List[Any]:
        """Call every listener of ``event``; collect results other than None/False."""
        results = []
        for listener in list(self._listeners.get(str(event), ())):
            result = listener(*args)
            if result is not None and result is not False:
                results.append(result)
        return results

    def add_filter(self, name: str, transform: Callable[[Any], Any]) -> Callable[[Any], Any]:
        self._filters.setdefault(name, []).append(transform)
        return transform

    def filter_with(self, name: str, value: Any) -> Any:
        for transform in self._filters.get(name, ()):
            value = transform(value)
        return value

    def clear(self) -> None:
        self._listeners.clear()
        self._filters.clear()
