"""Route groups: members registered inside one ``router.group()`` body."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .base_router import BaseRouter

__all__ = ["RouteGroup"]


class RouteGroup:
    """Set of routes (and nested groups) sharing a URL prefix.

    ``before``/``after`` fan out to the members present at call time; members
    added later are not affected.
    """

    __slots__ = ("router", "_members")

    def __init__(self, router: "BaseRouter", *, register: bool = True) -> None:
        self.router = router
        self._members: Dict[int, Any] = {}
        if register:
            router.add(self)

    def __repr__(self) -> str:
        return f"<RouteGroup members={len(self._members)}>"

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._members.values()))

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, member: Any) -> bool:
        return self.has(member)

    def has(self, member: Any) -> bool:
        return id(member) in self._members

    def add(self, member: Any) -> "RouteGroup":
        self._members[id(member)] = member
        return self

    def remove(self, member: Any) -> "RouteGroup":
        self._members.pop(id(member), None)
        return self

    def before(self, callback: Callable) -> "RouteGroup":
        for member in self:
            member.before(callback)
        return self

    def after(self, callback: Callable) -> "RouteGroup":
        for member in self:
            member.after(callback)
        return self

    def push(self, links: Any, type: str = "text") -> "RouteGroup":  # noqa: A002
        self.router.response.push(links, type)
        return self
