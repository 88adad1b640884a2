"""Logging plugin: one line when a route run starts and one when it ends.

The plugin listens to the router's ``start`` and ``end`` events instead of
wrapping the handler, so the timing covers the whole run (middlewares,
handler and output filters) and the lines carry what the router actually
dispatched:

* ``"GET /user/:id start {'id': '7'}"``
* ``"GET /user/:id end (0.42 ms)"``

A run aborted by a ``before`` middleware only logs its start line; a handler
that raises never reaches ``end``.

Configuration
-------------
- Keys (router-level or per-route): ``enabled``, ``start``, ``end``,
  ``args`` (append extracted parameters to the start line), ``log`` and
  ``print``. Per-route values come from route options
  (``router.on("/x", cb, logging_end=False)``) or ``logging_flags``
  (``"enabled:off,args:on"``).
- Runtime: ``router.logging.configure(...)`` and
  ``router.logging.configure(_target="<route name>", ...)``;
  ``router.set_plugin_enabled(name, "logging", False)`` silences a route.

Sinks
-----
- ``print`` -> ``print(line)`` on the real stdout (events fire outside the
  handler capture, so nothing leaks into the response body);
- else ``log`` -> ``logger.info(line)`` when the logger has handlers,
  otherwise stderr;
- else nothing.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Any, Dict, Optional

from smartpath.core.routes import Route
from smartpath.core.router import Router
from smartpath.plugins._base_plugin import BasePlugin

_DEFAULTS = {
    "enabled": True,
    "start": True,
    "end": True,
    "args": True,
    "log": True,
    "print": False,
}


class LoggingPlugin(BasePlugin):
    """Logs each route run with its method, pattern, parameters and timing."""

    plugin_code = "logging"
    plugin_description = "Logs route runs with timing"

    __slots__ = ("_logger",)

    def __init__(self, router: Router, *, logger: Optional[logging.Logger] = None, **cfg: Any):
        self._logger = logger or logging.getLogger("smartpath")
        super().__init__(router, **cfg)
        router.on_event("start", self._on_start)
        router.on_event("end", self._on_end)

    def configure(
        self,
        enabled: bool = True,
        start: bool = True,
        end: bool = True,
        args: bool = True,
        log: bool = True,
        print: bool = False,  # noqa: A002 - shadowing builtin intentionally
    ):
        """Configure logging plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """

    def _settings(self, route: Route) -> Optional[Dict[str, bool]]:
        # the event hub may be shared with other routers
        if route.router is not self._router:
            return None
        if not self._router.is_plugin_enabled(route.name, self.name):
            return None
        cfg = {**_DEFAULTS, **self.configuration(route.name)}
        flags = cfg.pop("flags", None)
        if isinstance(flags, str):
            cfg.update(self._parse_flags(flags))
        settings = {
            key: default if cfg.get(key) is None else bool(cfg[key])
            for key, default in _DEFAULTS.items()
        }
        return settings if settings["enabled"] else None

    def _on_start(self, route: Route, args: Dict[str, Any], method: str) -> None:
        settings = self._settings(route)
        if settings is None:
            return
        self._router.set_runtime_data(route.name, self.name, "started", time.perf_counter())
        if not settings["start"]:
            return
        line = f"{method.upper()} {route.url_pattern or '/'} start"
        if args and settings["args"]:
            line = f"{line} {dict(args)}"
        self._write(line, settings)

    def _on_end(self, route: Route, args: Dict[str, Any], method: str) -> None:
        settings = self._settings(route)
        if settings is None or not settings["end"]:
            return
        started = self._router.get_runtime_data(route.name, self.name, "started")
        elapsed = 0.0 if started is None else (time.perf_counter() - started) * 1000
        self._write(f"{method.upper()} {route.url_pattern or '/'} end ({elapsed:.2f} ms)", settings)

    def _write(self, line: str, settings: Dict[str, bool]) -> None:
        if settings["print"]:
            print(line)
        elif settings["log"]:
            if self._logger.hasHandlers():
                self._logger.info(line)
            else:
                print(line, file=sys.stderr)


Router.register_plugin(LoggingPlugin)
