"""SmartPath public API surface (source of truth).

- Public exports: ``Router``, ``BaseRouter``, ``Route``, ``RouteGroup``, the
  ``route`` marker, the request/response collaborators (``Request``,
  ``Response``, ``View``), ``EventHub`` and ``MalformedSchemaError``.
- Plugin registration: built-in plugins (``logging``, ``pydantic``) are
  imported for their side effect of calling ``Router.register_plugin``.
  Imports are done lazily via ``import_module`` to avoid cycles.

Importing the package never instantiates a router.
"""

from importlib import import_module

__version__ = "0.3.0"

from .core import (
    BaseRouter,
    EventHub,
    MalformedSchemaError,
    Request,
    Response,
    Route,
    RouteGroup,
    Router,
    View,
    route,
)

# Import plugins to trigger auto-registration (lazy to avoid cycles)
for _plugin in ("logging", "pydantic"):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "BaseRouter",
    "EventHub",
    "MalformedSchemaError",
    "Request",
    "Response",
    "Route",
    "RouteGroup",
    "Router",
    "View",
    "route",
]
