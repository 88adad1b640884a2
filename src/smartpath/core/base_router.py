"""Plugin-free router runtime (source of truth).

The module exposes :class:`BaseRouter`, which owns every piece of routing
state (registry, tag map, optimized tree, scope stacks) plus the
request/response/event collaborators, and implements registration, group
scoping, dispatch and reverse routing without any plugin logic. ``Router``
adds the plugin pipeline on top and must preserve these semantics.

Constructor
-----------
Constructor signature::

    BaseRouter(request=None, response=None, events=None, *, name=None, **options)

- Missing collaborators are created (``Request()``, ``Response()``,
  ``EventHub()``).
- ``options`` are merged over ``DEFAULT_OPTIONS`` through ``SmartOptions``;
  unknown option names raise ``KeyError``. ``option(name)`` reads one value,
  ``set_option(name, value)`` replaces it.

Lifecycle: construct -> register routes/groups -> (optional ``optimize()``)
-> dispatch. Registration is expected to finish before dispatch starts;
``reset()`` brings the router back to its pristine state.

Registration
------------
``add(item)`` receives every ``Route`` and ``RouteGroup`` on construction:

- routes get an ``ident`` (index in the route arena); a set tag is recorded
- with ``auto_optimize`` the route is indexed in the optimized tree: the
  static prefix of its pattern is split on ``/`` and each segment (leading
  ``(`` stripped) walks/creates one node; the route is appended to the final
  node's list, so registration order is preserved per node
- the innermost open group (if any) receives the item as a member
- the item is appended to the registry bucket keyed by the joined prefix stack

Groups
------
``group(prefix, body)``:

1. ``full = current_prefix() + prefix``
2. dynamic prefixes are matched (not end-anchored) against the current request
   path; on success the matched text, minus the outer prefix, replaces the
   prefix ("burn-in") and the named captures become positional arguments for
   ``body``
3. ``body`` runs only when ``request.uri + "/"`` starts with ``full + "/"``
   or when ``pruning`` is disabled
4. while ``body`` runs, the prefix and a new ``RouteGroup`` sit on the scope
   stacks; both are popped on every exit path, an emptied prefix stack is
   reset to ``[""]``
5. a pruned group never calls ``body`` and returns a fresh, unregistered
   ``RouteGroup``

Dispatch
--------
``dispatch(url=None, method=None, return_route=False)``:

- defaults come from ``request``; the autosend of ``response`` is scheduled
  once on an ``ExitStack`` and runs on every exit path (``autosend`` option)
- empty tree: linear scan of all routes in registration order
- otherwise: walk the tree one path segment at a time, falling back to the
  ``""`` node, stopping when neither exists; the route list of the final
  node is scanned in order
- first matching route is returned (``return_route``) or run with its
  extracted arguments (returns ``True``)
- no match: status 404, the ``404`` event fires once and its non-empty
  results are added to the body; returns ``False``

Reverse routing
---------------
``tagged(name)`` returns the tagged route or ``False``; ``url(name, params)``
returns its ``get_url(params)`` or ``""``.

Hooks for subclasses
--------------------
- ``_wrap_handler(route, call_next)``: wrap handler invocation (plugins).
- ``_after_route_registered(route)``: invoked after a route is registered.
- ``_describe_route_extra(route)``: extend ``members()`` output.

Default implementations are no-ops/passthrough.
"""

from __future__ import annotations

import inspect
import logging
from contextlib import ExitStack
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from smartseeds import SmartOptions

from .events import EventHub
from .group import RouteGroup
from .http import TYPE_HTML, Request, Response
from .pattern import (
    compile_pattern,
    escape_literal,
    is_dynamic,
    normalize_path,
    static_prefix,
    unescape_literal,
)
from .routes import Route

__all__ = ["BaseRouter", "DEFAULT_OPTIONS", "TARGET_ATTR_NAME"]

TARGET_ATTR_NAME = "__smartpath_routes__"

DEFAULT_OPTIONS: Dict[str, Any] = {
    "pruning": True,
    "auto_optimize": True,
    "append_echoed_text": True,
    "autosend": True,
    "response_default_type": TYPE_HTML,
    "response_filter": "core.route.response",
}

logger = logging.getLogger("smartpath")


class _TreeNode:
    __slots__ = ("children", "routes")

    def __init__(self) -> None:
        self.children: Dict[str, _TreeNode] = {}
        self.routes: List[Route] = []


class BaseRouter:
    """Plugin-free URL router.

    Responsibilities:
    - register routes and groups, attributing them to the active scope
    - index routes by static prefix for fast dispatch
    - dispatch a path/method to the first matching route
    - regenerate URLs from tagged routes
    """

    __slots__ = (
        "name",
        "request",
        "response",
        "events",
        "_option_values",
        "_options",
        "_registry",
        "_arena",
        "_tags",
        "_tree",
        "_prefix",
        "_scope",
    )

    def __init__(
        self,
        request: Optional[Request] = None,
        response: Optional[Response] = None,
        events: Optional[EventHub] = None,
        *,
        name: Optional[str] = None,
        **options: Any,
    ) -> None:
        unknown = set(options) - set(DEFAULT_OPTIONS)
        if unknown:
            raise KeyError(f"Unknown router option(s): {', '.join(sorted(unknown))}")
        self.name = name
        self.request = request if request is not None else Request()
        self.response = response if response is not None else Response()
        self.events = events if events is not None else EventHub()
        self._option_values: Dict[str, Any] = dict(options)
        self._options = SmartOptions(self._option_values, defaults=DEFAULT_OPTIONS)
        self._registry: Dict[str, List[Union[Route, RouteGroup]]] = {}
        self._arena: List[Route] = []
        self._tags: Dict[str, int] = {}
        self._tree = _TreeNode()
        self._prefix: List[str] = []
        self._scope: List[RouteGroup] = []

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<{type(self).__name__}{label} routes={len(self._arena)}>"

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------
    def option(self, name: str) -> Any:
        if name not in DEFAULT_OPTIONS:
            raise KeyError(f"Unknown router option: {name!r}")
        return getattr(self._options, name, DEFAULT_OPTIONS[name])

    def set_option(self, name: str, value: Any) -> "BaseRouter":
        if name not in DEFAULT_OPTIONS:
            raise KeyError(f"Unknown router option: {name!r}")
        self._option_values[name] = value
        self._options = SmartOptions(self._option_values, defaults=DEFAULT_OPTIONS)
        return self

    # ------------------------------------------------------------------
    # Route constructors
    # ------------------------------------------------------------------
    def on(
        self, url_pattern: str, callback: Any = None, *, name: Optional[str] = None, **options: Any
    ) -> Route:
        """Define a GET route; ``options`` become route metadata/plugin config."""
        return Route(self, url_pattern, callback, name=name, metadata=self._split_options(options))

    def get(self, url_pattern: str, callback: Any = None, **options: Any) -> Route:
        return self.on(url_pattern, callback, **options).via("get")

    def post(self, url_pattern: str, callback: Any = None, **options: Any) -> Route:
        return self.on(url_pattern, callback, **options).via("post")

    def any(self, url_pattern: str, callback: Any = None, **options: Any) -> Route:
        return self.on(url_pattern, callback, **options).via("*")

    def map(self, url_pattern: str, callbacks: Dict[str, Any], **options: Any) -> Route:
        """Define one route answering several methods with one handler each."""
        handlers = {method.lower(): callback for method, callback in callbacks.items()}
        return self.on(url_pattern, handlers, **options).via(*handlers)

    def mount(self, controller: Any) -> List[Route]:
        """Register every ``route``-marked method of ``controller``."""
        created: List[Route] = []
        for func, marker in self._iter_marked_methods(controller):
            pattern = marker.pop("pattern")
            methods = marker.pop("methods", None)
            tag = marker.pop("tag", None)
            rules = marker.pop("rules", None)
            entry_name = marker.pop("entry_name", None)
            bound = func.__get__(controller, type(controller))
            route = self.on(pattern, bound, name=entry_name, **marker)
            if methods:
                route.via(*methods)
            if rules:
                route.rules(rules)
            if tag:
                route.tag(tag)
            created.append(route)
        return created

    def _iter_marked_methods(self, controller: Any) -> Iterator[Tuple[Callable, Dict[str, Any]]]:
        seen: set[int] = set()
        for base in reversed(type(controller).__mro__):
            for value in vars(base).values():
                if not inspect.isfunction(value):
                    continue
                if id(value) in seen:
                    continue
                seen.add(id(value))
                for marker in getattr(value, TARGET_ATTR_NAME, None) or ():
                    yield value, dict(marker)

    def _split_options(self, options: Dict[str, Any]) -> Dict[str, Any]:
        # <plugin>_<key> options become per-route plugin config
        plugin_options: Dict[str, Dict[str, Any]] = {}
        metadata: Dict[str, Any] = {}
        for key, value in options.items():
            if "_" in key:
                plugin_name, plug_key = key.split("_", 1)
                if plugin_name and plug_key and self._is_known_plugin(plugin_name):
                    plugin_options.setdefault(plugin_name, {})[plug_key] = value
                    continue
            metadata[key] = value
        if plugin_options:
            metadata["plugin_config"] = plugin_options
        return metadata

    def _is_known_plugin(self, prefix: str) -> bool:
        from smartpath.core.router import Router  # circular at module level

        return prefix in Router.available_plugins()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------
    def current_prefix(self) -> str:
        return "".join(self._prefix).rstrip("/")

    def add(self, item: Union[Route, RouteGroup]) -> Union[Route, RouteGroup]:
        if isinstance(item, Route):
            item.ident = len(self._arena)
            self._arena.append(item)
            if item.tag_name:
                self._tags[item.tag_name] = item.ident
            if self.option("auto_optimize"):
                self._index(item)
        if self._scope:
            self._scope[-1].add(item)
        self._registry.setdefault("".join(self._prefix), []).append(item)
        if isinstance(item, Route):
            self._after_route_registered(item)
        return item

    def _index(self, route: Route) -> None:
        node = self._tree
        for segment in static_prefix(route.url_pattern).strip("/").split("/"):
            node = node.children.setdefault(segment.lstrip("("), _TreeNode())
        node.routes.append(route)

    def optimize(self) -> "BaseRouter":
        """Rebuild the optimized tree from every registered route."""
        self._tree = _TreeNode()
        for route in self._arena:
            self._index(route)
        return self

    def register_tag(self, name: str, route: Route) -> None:
        ident = route.ident
        registered = (
            route.router is self
            and ident is not None
            and ident < len(self._arena)
            and self._arena[ident] is route
        )
        if not registered:
            # stale idents survive reset(); never alias another route
            raise ValueError(f"Route {route!r} is not registered on this router")
        self._tags[name] = route.ident

    def routes(self) -> Iterator[Route]:
        """Iterate registered routes in registration order."""
        return iter(list(self._arena))

    def groups(self, prefix: str = "") -> List[Union[Route, RouteGroup]]:
        """Return the registry bucket for a joined prefix (``""`` is the root)."""
        return list(self._registry.get(prefix, ()))

    def reset(self) -> None:
        """Clear every route, group, tag and the optimized tree."""
        self._registry = {}
        self._arena = []
        self._tags = {}
        self._tree = _TreeNode()
        self._prefix = []
        self._scope = []

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------
    def group(self, prefix: str, body: Callable[..., Any]) -> RouteGroup:
        """Run ``body`` with ``prefix`` applied, unless the request cannot match it."""
        prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        outer = self.current_prefix()
        uri = self.request.uri
        args: List[str] = []

        if is_dynamic(prefix):
            cut = compile_pattern(outer + prefix, anchored=False)
            found = cut.match(normalize_path(uri))
            if found is not None:
                args = [value for value in found.groupdict().values() if value is not None]
                partial = found.group(0)
                literal_outer = unescape_literal(outer)
                if partial.startswith(literal_outer):
                    partial = partial[len(literal_outer):]
                prefix = escape_literal(partial)

        full = unescape_literal(outer + prefix)
        if not (f"{uri.rstrip('/')}/".startswith(f"{full}/") or not self.option("pruning")):
            logger.debug("group %r pruned for %s", outer + prefix, uri)
            return RouteGroup(self, register=False)

        self._prefix.append(prefix)
        group = RouteGroup(self)
        self._scope.append(group)
        try:
            body(*args)
        finally:
            self._scope.pop()
            self._prefix.pop()
            if not self._prefix:
                self._prefix = [""]
        return group

    # ------------------------------------------------------------------
    # Reverse routing
    # ------------------------------------------------------------------
    def tagged(self, name: str) -> Union[Route, bool]:
        ident = self._tags.get(name)
        if ident is None:
            return False
        return self._arena[ident]

    def url(self, name: str, params: Optional[Dict[str, Any]] = None) -> str:
        route = self.tagged(name)
        return route.get_url(params) if route else ""

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(
        self, url: Optional[str] = None, method: Optional[str] = None, return_route: bool = False
    ) -> Union[Route, bool]:
        """Find the first route matching ``url``/``method`` and run it."""
        url = url or self.request.uri
        method = (method or self.request.method).lower()
        with ExitStack() as deferred:
            deferred.callback(self._autosend)
            for route in self._candidates(url):
                if not route.match(url, method):
                    continue
                if return_route:
                    return route
                route.run(route.extract_args(url), method)
                return True

            logger.debug("no route for %s %s", method.upper(), url)
            self.response.status(404, "404 Resource not found.")
            for result in self.events.trigger(404):
                if result:
                    self.response.add(result)
            return False

    def _candidates(self, url: str) -> Iterable[Route]:
        if not self._tree.children:
            return list(self._arena)
        node = self._tree
        for segment in url.strip("/").split("/"):
            child = node.children.get(segment)
            if child is None:
                # root-level dynamic routes, e.g. "/:page"
                child = node.children.get("")
            if child is None:
                break
            node = child
        return list(node.routes)

    def _autosend(self) -> None:
        if self.option("autosend"):
            self.response.send()

    def exit_with_error(self, code: int, message: str = "Application Error") -> None:
        self.response.error(code, message)
        self.response.send()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on_event(self, event: Any, listener: Callable) -> Callable:
        """Listen to ``start``, ``before``, ``after``, ``end`` or ``404``."""
        return self.events.on(event, listener)

    def add_filter(self, name: str, transform: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return self.events.add_filter(name, transform)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def members(self) -> Dict[str, Any]:
        """Return a description of registered routes and tags."""
        if not self._arena:
            return {}
        return {
            "name": self.name,
            "router": self,
            "routes": [self._route_member_info(route) for route in self._arena],
            "tags": {tag: self._arena[ident].name for tag, ident in self._tags.items()},
        }

    def _route_member_info(self, route: Route) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "name": route.name,
            "pattern": route.url_pattern or "/",
            "methods": sorted(route.methods),
            "dynamic": route.dynamic,
            "tag": route.tag_name or None,
            "befores": len(route.befores),
            "afters": len(route.afters),
            "metadata": route.metadata,
        }
        extra = self._describe_route_extra(route)
        if extra:
            info.update(extra)
        return info

    # ------------------------------------------------------------------
    # Plugin hooks (no-op for BaseRouter)
    # ------------------------------------------------------------------
    def iter_plugins(self) -> List[Any]:  # pragma: no cover - base router has no plugins
        return []

    def _wrap_handler(self, route: Route, call_next: Callable) -> Callable:
        return call_next

    def _after_route_registered(self, route: Route) -> None:
        """Hook invoked after a route is registered (subclasses may override)."""
        return None

    def _describe_route_extra(self, route: Route) -> Dict[str, Any]:
        """Hook used by subclasses to inject extra description data."""
        return {}
