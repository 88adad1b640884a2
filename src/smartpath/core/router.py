"""Router with plugin pipeline (source of truth).

``Router`` extends ``BaseRouter`` with a global plugin registry, per-router
plugin instances, handler wrapping, and plugin state stored on the router.

Internal state
--------------
- ``_plugins``: instantiated plugins in the order they were attached.
- ``_plugins_by_name``: name -> plugin instance.
- ``_plugin_info``: per-plugin state store on the router.

Global registry
---------------
``Router.register_plugin(plugin_class, name=None)`` validates that
``plugin_class`` is a ``BasePlugin`` subclass with a ``plugin_code``.
Registering a different class under an existing code raises ``ValueError``
unless ``name`` is given explicitly (intentional replacement).
``available_plugins`` returns a shallow copy of the registry.

Attaching plugins
-----------------
``plug(plugin_name, **config)`` looks up the class by name (raises
``ValueError`` listing available names when missing), instantiates it bound to
this router, runs ``on_decore`` for every route already registered and
returns ``self``. ``__getattr__`` exposes attached plugins by name or raises
``AttributeError``.

Runtime flags and data
----------------------
Stored under ``_plugin_info[plugin_name]`` with a reserved ``"--base--"``
bucket for router-level defaults and one bucket per route name, each with
``config`` and ``locals``. ``set_plugin_enabled`` / ``is_plugin_enabled``
and ``set_runtime_data`` / ``get_runtime_data`` read/write these buckets.

Wrapping pipeline
-----------------
``_wrap_handler(route, call_next)`` builds layers from ``_plugins`` in reverse
order (first attached = outermost). Each layer is guarded so that a plugin
disabled for the route is skipped. Wrapping happens per call because a route
may pick a different handler per HTTP method.

Route registration
------------------
``_after_route_registered`` copies ``metadata["plugin_config"]`` (from
``<plugin>_<key>`` route options) into the per-route buckets and applies
``on_decore`` of every attached plugin.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Type

from smartpath.core.base_router import BaseRouter
from smartpath.core.routes import Route
from smartpath.plugins._base_plugin import BASE_TARGET, BasePlugin

__all__ = ["Router"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


class Router(BaseRouter):
    """Router with plugin registry/pipeline support."""

    __slots__ = BaseRouter.__slots__ + (
        "_plugins",
        "_plugins_by_name",
        "_plugin_info",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._plugins: List[BasePlugin] = []
        self._plugins_by_name: Dict[str, BasePlugin] = {}
        self._plugin_info: Dict[str, Dict[str, Any]] = {}
        super().__init__(*args, **kwargs)

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        """Register a plugin class globally.

        Args:
            plugin_class: A BasePlugin subclass with plugin_code defined
            name: Optional override name. If provided, overwrites any existing
                  registration. If not provided, uses plugin_code and raises
                  if already registered with another class.
        """
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        if not getattr(plugin_class, "plugin_code", None):
            raise ValueError(
                f"Plugin {plugin_class.__name__} not following standards: missing plugin_code"
            )
        code = name or plugin_class.plugin_code
        if name is None:
            existing = _PLUGIN_REGISTRY.get(code)
            if existing is not None and existing is not plugin_class:
                raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "Router":
        """Attach a plugin by name (previously registered globally)."""
        if not isinstance(plugin, str):
            raise TypeError(
                f"Plugin must be referenced by name string, got {type(plugin).__name__}"
            )
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(
                f"Unknown plugin '{plugin}'. Register it first. Available plugins: {available}"
            )
        instance = plugin_class(self, **config)
        if instance.name in self._plugins_by_name:
            raise ValueError(f"Plugin '{instance.name}' already attached to router")
        self._plugins.append(instance)
        self._plugins_by_name[instance.name] = instance
        for route in self._arena:
            self._apply_plugin(instance, route)
        return self

    def iter_plugins(self) -> List[BasePlugin]:  # type: ignore[override]
        """Return attached plugin instances in application order."""
        return list(self._plugins)

    def get_config(self, plugin_name: str, route_name: Optional[str] = None) -> Dict[str, Any]:
        """Return plugin config (router level + per-route overrides)."""
        plugin = self._plugins_by_name.get(plugin_name)
        if plugin is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to router '{self.name}'"
            )
        return plugin.configuration(route_name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        plugin = self._plugins_by_name.get(name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{name}' attached to router '{self.name}'")
        return plugin

    def _get_plugin_bucket(
        self, plugin_name: str, create: bool = False
    ) -> Optional[Dict[str, Any]]:
        bucket = self._plugin_info.get(plugin_name)
        if bucket is None and create:
            bucket = {BASE_TARGET: {"config": {}, "locals": {}}}
            self._plugin_info[plugin_name] = bucket
        if bucket is not None and BASE_TARGET not in bucket:
            bucket[BASE_TARGET] = {"config": {}, "locals": {}}
        return bucket

    def _require_bucket(self, plugin_name: str) -> Dict[str, Any]:
        bucket = self._get_plugin_bucket(plugin_name)
        if bucket is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to router '{self.name}'"
            )
        return bucket

    # ------------------------------------------------------------------
    # Runtime helpers (state stored on plugin_info)
    # ------------------------------------------------------------------
    def set_plugin_enabled(self, route_name: str, plugin_name: str, enabled: bool = True) -> None:
        bucket = self._require_bucket(plugin_name)
        slot = bucket.setdefault(route_name, {"config": {}, "locals": {}})
        slot.setdefault("locals", {})["enabled"] = bool(enabled)

    def is_plugin_enabled(self, route_name: str, plugin_name: str) -> bool:
        bucket = self._require_bucket(plugin_name)
        route_locals = bucket.get(route_name, {}).get("locals", {})
        if "enabled" in route_locals:
            return bool(route_locals["enabled"])
        base_locals = bucket.get(BASE_TARGET, {}).get("locals", {})
        return bool(base_locals.get("enabled", True))

    def set_runtime_data(self, route_name: str, plugin_name: str, key: str, value: Any) -> None:
        bucket = self._require_bucket(plugin_name)
        slot = bucket.setdefault(route_name, {"config": {}, "locals": {}})
        slot.setdefault("locals", {})[key] = value

    def get_runtime_data(
        self, route_name: str, plugin_name: str, key: str, default: Any = None
    ) -> Any:
        bucket = self._require_bucket(plugin_name)
        return bucket.get(route_name, {}).get("locals", {}).get(key, default)

    # ------------------------------------------------------------------
    # Overrides/hooks
    # ------------------------------------------------------------------
    def _wrap_handler(self, route: Route, call_next: Callable) -> Callable:  # type: ignore[override]
        wrapped = call_next
        for plugin in reversed(self._plugins):
            plugin_call = plugin.wrap_handler(self, route, wrapped)
            wrapped = self._create_wrapper(plugin, route, plugin_call, wrapped)
        return wrapped

    def _create_wrapper(
        self,
        plugin: BasePlugin,
        route: Route,
        plugin_call: Callable,
        next_handler: Callable,
    ) -> Callable:
        @wraps(next_handler)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not self.is_plugin_enabled(route.name, plugin.name):
                return next_handler(*args, **kwargs)
            return plugin_call(*args, **kwargs)

        return wrapper

    def _apply_plugin(self, plugin: BasePlugin, route: Route) -> None:
        if plugin.name not in route.plugins:
            route.plugins.append(plugin.name)
        plugin.on_decore(self, route)

    def _after_route_registered(self, route: Route) -> None:  # type: ignore[override]
        for pname, cfg in route.metadata.get("plugin_config", {}).items():
            bucket = self._plugin_info.setdefault(
                pname, {BASE_TARGET: {"config": {}, "locals": {}}}
            )
            slot = bucket.setdefault(route.name, {"config": {}, "locals": {}})
            slot["config"].update(cfg)
        for plugin in self._plugins:
            self._apply_plugin(plugin, route)

    def _describe_route_extra(self, route: Route) -> Dict[str, Any]:  # type: ignore[override]
        """Gather plugin config and metadata for a route."""
        plugins_info: Dict[str, Dict[str, Any]] = {}
        for plugin in self._plugins:
            plugin_data: Dict[str, Any] = {}
            config = plugin.configuration(route.name)
            if config:
                plugin_data["config"] = config
            meta = plugin.route_metadata(self, route)
            if meta:
                plugin_data["metadata"] = meta
            if plugin_data:
                plugins_info[plugin.name] = plugin_data
        if plugins_info:
            return {"plugins": plugins_info}
        return {}
