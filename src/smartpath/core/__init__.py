"""Core runtime aggregator.

Exposes the runtime building blocks from a single module; no extra logic
beyond imports/exports and no plugin registration:

* ``pattern`` -> schema compiler (``compile_pattern``, ``CompiledPattern``)
* ``routes`` / ``group`` -> ``Route``, ``RouteGroup``
* ``base_router`` -> ``BaseRouter`` (plugin-free engine)
* ``router`` -> ``Router`` (plugin-enabled)
* ``decorators`` -> ``route`` marker
* ``http`` / ``events`` -> in-process collaborators
"""

from .base_router import BaseRouter
from .decorators import route
from .events import EventHub
from .group import RouteGroup
from .http import Request, Response, View
from .pattern import CompiledPattern, MalformedSchemaError, compile_pattern, is_dynamic
from .routes import Route
from .router import Router

__all__ = [
    "BaseRouter",
    "CompiledPattern",
    "EventHub",
    "MalformedSchemaError",
    "Request",
    "Response",
    "Route",
    "RouteGroup",
    "Router",
    "View",
    "compile_pattern",
    "is_dynamic",
    "route",
]
