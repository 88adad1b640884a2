"""Plugin base class and configuration storage for SmartPath routers.

Plugins hook into two moments of a route's life:

- ``on_decore(router, route)`` runs once per registered route (also for routes
  registered before the plugin was attached);
- ``wrap_handler(router, route, call_next)`` wraps the handler call inside
  ``Route.run``; middleware and lifecycle events stay outside the wrapper.

Configuration lives on the router (``router._plugin_info[plugin.name]``) in a
``"--base--"`` bucket for router-level values and one bucket per route name.
Subclasses declare a ``configure(...)`` signature listing the options they
accept; ``__init_subclass__`` wraps it so that calling it stores the values
(``_target`` selects the bucket, ``flags="a,b:off"`` is parsed into booleans).
"""

from __future__ import annotations

from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from smartpath.core.routes import Route
    from smartpath.core.router import Router

__all__ = ["BasePlugin", "BASE_TARGET"]

BASE_TARGET = "--base--"


def _storing(configure: Callable) -> Callable:
    @wraps(configure)
    def wrapper(self: "BasePlugin", _target: str = BASE_TARGET, flags: Optional[str] = None, **config: Any):
        if flags:
            config.update(self._parse_flags(flags))
        configure(self, **config)
        bucket = self._router._get_plugin_bucket(self.name, create=True)
        slot = bucket.setdefault(_target, {"config": {}, "locals": {}})
        slot.setdefault("config", {}).update(config)

    wrapper._stores_config = True  # type: ignore[attr-defined]
    return wrapper


class BasePlugin:
    """Hook interface + configuration helpers for router plugins."""

    plugin_code: str = ""
    plugin_description: str = ""

    __slots__ = ("name", "_router")

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        configure = cls.__dict__.get("configure")
        if configure is not None and not getattr(configure, "_stores_config", False):
            cls.configure = _storing(configure)  # type: ignore[method-assign]

    def __init__(self, router: "Router", *, flags: Optional[str] = None, **config: Any):
        self.name = self.plugin_code or type(self).__name__.lower()
        self._router = router
        bucket = router._get_plugin_bucket(self.name, create=True)
        if flags:
            config.update(self._parse_flags(flags))
        bucket[BASE_TARGET]["config"].update(config)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def configure(self, **config: Any) -> None:
        """Accept any configuration; storage is handled by the wrapper."""

    def configuration(self, route_name: Optional[str] = None) -> Dict[str, Any]:
        """Return router-level config merged with the ``route_name`` overrides."""
        bucket = self._router._get_plugin_bucket(self.name)
        if bucket is None:
            return {}
        merged = dict(bucket.get(BASE_TARGET, {}).get("config", {}))
        if route_name and route_name in bucket:
            merged.update(bucket[route_name].get("config", {}))
        return merged

    def _parse_flags(self, flags: str) -> Dict[str, bool]:
        mapping: Dict[str, bool] = {}
        for chunk in flags.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            if ":" in chunk:
                name, value = chunk.split(":", 1)
                mapping[name.strip()] = value.strip().lower() != "off"
            else:
                mapping[chunk] = True
        return mapping

    def on_decore(self, router: "Router", route: "Route") -> None:
        """Hook run when the route is registered."""

    def wrap_handler(self, router: "Router", route: "Route", call_next: Callable) -> Callable:
        """Wrap handler invocation; default passthrough."""
        return call_next

    def route_metadata(self, router: "Router", route: "Route") -> Dict[str, Any]:
        """Extra data shown by ``router.members()``."""
        return {}


BasePlugin.configure = _storing(BasePlugin.configure)  # type: ignore[method-assign]
