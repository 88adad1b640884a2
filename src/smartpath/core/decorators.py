"""Decorator helpers for marking routed methods (source of truth).

The module contains only marker helpers; no router mutation happens at
decoration time.

``route(pattern, *, methods=None, tag=None, rules=None, name=None, **kwargs)``

- Returns a decorator storing metadata on the function under
  ``TARGET_ATTR_NAME`` as a list of dicts. Each payload starts with
  ``{"pattern": pattern}``.

- ``methods`` (a string or an iterable of strings) replaces the default GET
  acceptance, ``tag`` names the route for reverse routing and ``rules`` maps
  parameter names to regex fragments. ``name`` sets the logical route name
  used by plugin configuration (stored as ``entry_name``).

- Extra ``**kwargs`` are copied verbatim into the payload (route metadata or
  ``<plugin>_<key>`` plugin options). Existing markers are preserved; the new
  one is appended so the same function can answer several patterns.

- The decorator returns the original function unchanged aside from the marker.

Markers are consumed by ``router.mount(controller)``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional, Union

from .base_router import TARGET_ATTR_NAME
from .router import Router

__all__ = ["route", "Router"]


def route(
    pattern: str,
    *,
    methods: Optional[Union[str, Iterable[str]]] = None,
    tag: Optional[str] = None,
    rules: Optional[Dict[str, str]] = None,
    name: Optional[str] = None,
    **kwargs: Any,
) -> Callable:
    """Mark a method for registration on ``router.mount()``.

    Args:
        pattern: URL schema (``/user/:id``, ``/page(/:slug)``...).
        methods: HTTP method(s) accepted; defaults to GET.
        tag: Optional tag for reverse routing.
        rules: Optional parameter rules.
        name: Optional explicit route name.
    """

    def decorator(func: Callable) -> Callable:
        markers = list(getattr(func, TARGET_ATTR_NAME, []))
        payload: Dict[str, Any] = {"pattern": pattern}
        if methods is not None:
            payload["methods"] = [methods] if isinstance(methods, str) else list(methods)
        if tag:
            payload["tag"] = tag
        if rules:
            payload["rules"] = dict(rules)
        if name is not None:
            payload["entry_name"] = name
        for key, value in kwargs.items():
            payload[key] = value
        markers.append(payload)
        setattr(func, TARGET_ATTR_NAME, markers)
        return func

    return decorator
