"""Route definition and execution protocol (source of truth).

A ``Route`` binds one URL schema to a set of HTTP methods and a handler. It is
created through a router (``router.on()``, ``get()``, ``post()``, ``any()``,
``map()`` or a ``route`` marker) and registers itself on construction.

Construction
------------
``Route(router, url_pattern, callback=None, method="get", *, name=None, metadata=None)``

- the active group prefix (right-trimmed of ``/``) is prepended to
  ``"/" + url_pattern.strip("/")``
- the joined string is right-trimmed of ``/``, every ``/(`` becomes ``(/`` (so
  ``/test/(:a)`` behaves as ``/test(/:a)``) and doubled slashes collapse
- both matcher forms are compiled once; ``rules()`` recompiles them from the
  full rule map
- accepted methods start as ``{method}``

Fluent configuration (``via``, ``rules``, ``with_``, ``before``, ``after``,
``tag``, ``push``) returns the route and may run any time before dispatch.
A route also works as a decorator: ``@router.get("/x")`` binds the decorated
function as handler and hands the function back untouched.

Run protocol
------------
``run(args, method)`` drives one execution against ``router.response``:

1. ``start`` event
2. before-middleware in reverse registration order; each one emits
   ``before``, runs with stdout captured, contributes echoed text (when
   ``append_echoed_text``) and its return value; ``False`` aborts the run and
   ``[""]`` is returned
3. handler resolution: a ``{method: callable}`` map picks the current method
4. callables are invoked with ``**args`` through the router's plugin pipeline,
   views are rendered with ``str()``; both set the default content type and
   contribute echoed text plus result. Any other non-None value is appended
   as final content
5. after-middleware in registration order, same rules as step 2
6. ``end`` event
7. the response body, passed through the ``response_filter`` filter, is
   returned as a one-item list

Abort discards nothing already written to the response sink; it only changes
what ``run()`` returns.
"""

from __future__ import annotations

import io
import re
from contextlib import redirect_stdout
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from smartseeds.typeutils import safe_is_instance

from .pattern import CompiledPattern, unescape_literal

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .base_router import BaseRouter

__all__ = ["Route"]

_URL_PARAM = re.compile(r":(\w+)")
_SLASHES = re.compile(r"/+")
_VIEW_CLASS = "smartpath.core.http.View"


def _capture(func: Callable, *args: Any, **kwargs: Any) -> Tuple[str, Any]:
    """Call ``func`` collecting whatever it prints."""
    buffer = io.StringIO()
    with redirect_stdout(buffer):
        result = func(*args, **kwargs)
    return buffer.getvalue(), result


class Route:
    """One URL schema bound to methods, handler and middleware."""

    __slots__ = (
        "router",
        "ident",
        "url_pattern",
        "callback",
        "methods",
        "befores",
        "afters",
        "tag_name",
        "metadata",
        "plugins",
        "_name",
        "_rules",
        "_compiled",
    )

    def __init__(
        self,
        router: "BaseRouter",
        url_pattern: str,
        callback: Any = None,
        method: str = "get",
        *,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.router = router
        self.ident: Optional[int] = None
        pattern = "/" + url_pattern.strip("/")
        joined = (router.current_prefix() + pattern).rstrip("/")
        self.url_pattern = joined.replace("/(", "(/").replace("//", "/")
        self.callback = callback
        self.methods: Dict[str, bool] = {method.lower(): True}
        self.befores: List[Callable] = []
        self.afters: List[Callable] = []
        self.tag_name = ""
        self.metadata: Dict[str, Any] = dict(metadata or {})
        self.plugins: List[str] = []
        self._name = name
        self._rules: Dict[str, str] = {}
        self._compiled = CompiledPattern(self.url_pattern, self._rules)
        router.add(self)

    def __repr__(self) -> str:
        verbs = ",".join(sorted(self.methods)).upper()
        return f"<Route {verbs} {self.url_pattern or '/'}>"

    def __call__(self, func: Callable) -> Callable:
        self.callback = func
        return func

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._name or self.url_pattern or "/"

    @property
    def dynamic(self) -> bool:
        return self._compiled.dynamic

    @property
    def compiled(self) -> CompiledPattern:
        return self._compiled

    @property
    def rule_map(self) -> Dict[str, str]:
        return dict(self._rules)

    # ------------------------------------------------------------------
    # Fluent configuration
    # ------------------------------------------------------------------
    def via(self, *methods: str) -> "Route":
        """Replace the accepted HTTP methods (``"*"`` accepts any)."""
        self.methods = {method.lower(): True for method in methods}
        return self

    def rules(self, rules: Dict[str, str]) -> "Route":
        """Merge parameter rules (name -> regex fragment) and recompile."""
        merged = {**self._rules, **dict(rules)}
        # a fragment that fails to compile leaves the route untouched
        self._compiled = CompiledPattern(self.url_pattern, merged)
        self._rules = merged
        return self

    def with_(self, callback: Any) -> "Route":
        self.callback = callback
        return self

    def before(self, callback: Callable) -> "Route":
        self.befores.append(callback)
        return self

    def after(self, callback: Callable) -> "Route":
        self.afters.append(callback)
        return self

    def tag(self, name: Optional[str]) -> "Route":
        if name:
            self.router.register_tag(name, self)
        self.tag_name = name or ""
        return self

    def push(self, links: Any, type: str = "text") -> "Route":  # noqa: A002
        self.router.response.push(links, type)
        return self

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def match(self, url: str, method: str = "get") -> bool:
        method = method.lower()
        if not self.methods.get(method) and not self.methods.get("*"):
            return False
        return self._compiled.matches(url)

    def extract_args(self, url: str) -> Dict[str, str]:
        return self._compiled.extract(url)

    def get_url(self, params: Optional[Dict[str, Any]] = None) -> str:
        """Rebuild a concrete URL from the schema (reverse routing)."""
        params = dict(params or {})

        def fill(match: "re.Match[str]") -> str:
            key = match.group(1)
            value = params.get(key)
            return "" if value is None else f"{value}/"

        raw = self.url_pattern.replace("(", "").replace(")", "")
        url = _SLASHES.sub("/", _URL_PARAM.sub(fill, raw)).rstrip("/") or "/"
        return unescape_literal(url)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def run(self, args: Dict[str, Any], method: str = "get") -> List[Any]:
        method = method.lower()
        router = self.router
        response = router.response
        events = router.events
        append_echoed = router.option("append_echoed_text")
        events.trigger("start", self, args, method)

        for middleware in reversed(self.befores):
            events.trigger("before", self, middleware)
            if not self._run_middleware(middleware, append_echoed):
                return [""]

        handler = self._resolve_handler(method)
        is_view = safe_is_instance(handler, _VIEW_CLASS)
        if is_view or callable(handler):
            response.type(router.option("response_default_type"))
            if is_view:
                echoed, result = _capture(str, handler)
            else:
                echoed, result = _capture(router._wrap_handler(self, handler), **args)
            if append_echoed:
                response.add(echoed)
            response.add(result)
        elif handler is not None:
            response.add(handler)

        for middleware in self.afters:
            events.trigger("after", self, middleware)
            if not self._run_middleware(middleware, append_echoed):
                return [""]

        events.trigger("end", self, args, method)
        return [events.filter_with(router.option("response_filter"), response.body())]

    def run_if_match(self, url: str, method: str = "get") -> Optional[List[Any]]:
        if not self.match(url, method):
            return None
        return self.run(self.extract_args(url), method)

    def _run_middleware(self, middleware: Callable, append_echoed: bool) -> bool:
        response = self.router.response
        echoed, result = _capture(middleware)
        if append_echoed:
            response.add(echoed)
        if result is False:
            return False
        response.add(result)
        return True

    def _resolve_handler(self, method: str) -> Any:
        if isinstance(self.callback, dict):
            return self.callback.get(method)
        return self.callback
