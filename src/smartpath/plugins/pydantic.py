"""Pydantic validation plugin (source of truth).

Responsibilities
----------------
- Build a Pydantic model from the handler's type hints (``create_model``).
- At call time, validate/coerce the URL parameters handed to the handler
  (``"42"`` becomes ``42`` for an ``int`` hint); non-annotated parameters
  bypass validation.
- Surface validation failures as Pydantic ``ValidationError`` with contextual
  title ``"Validation error in <route.name>"``.

Behaviour and data
------------------
- ``on_decore(router, route)`` prepares the model for a plain callable
  handler; per-method maps and handlers bound later via ``with_`` are
  prepared lazily on first call.
- Models are cached in ``route.metadata["pydantic"]`` keyed by handler:
  ``{"func": handler, "model": model, "hints": hints, "signature": sig}``.
- ``wrap_handler(router, route, call_next)`` binds the incoming kwargs with
  the cached signature, applies defaults, validates the annotated part and
  calls the handler with the merged result. Return value is unchanged.
- Handlers whose hints cannot be resolved, or with no parameter hints, get no
  model and the wrapper is a passthrough.
- ``configure(disabled=True)`` (router-wide or per route) turns validation off
  at runtime.

Registers itself globally as ``"pydantic"`` during module import.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple, get_type_hints

from pydantic import ValidationError, create_model

from smartpath.core.routes import Route
from smartpath.core.router import Router
from smartpath.plugins._base_plugin import BasePlugin


class PydanticPlugin(BasePlugin):
    """Validate handler inputs with Pydantic using type hints."""

    plugin_code = "pydantic"
    plugin_description = "Validates URL parameters using Pydantic type hints"

    def configure(self, disabled: bool = False):
        """Configure pydantic plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """

    def on_decore(self, router: Router, route: Route) -> None:
        if callable(route.callback) and not isinstance(route.callback, dict):
            self._model_for(route, route.callback)

    def _model_for(self, route: Route, func: Callable) -> Optional[Dict[str, Any]]:
        # plugin layers are functools.wraps wrappers: key on the real handler
        func = inspect.unwrap(func)
        cache: List[Dict[str, Any]] = route.metadata.setdefault("pydantic", [])
        for meta in cache:
            if meta["func"] is func or meta["func"] == func:
                return meta["model"] and meta
        meta = {"func": func, "model": None, "hints": {}, "signature": None}
        cache.append(meta)
        try:
            hints = get_type_hints(func)
        except Exception:
            # No hints resolvable, no model created
            return None
        hints.pop("return", None)
        if not hints:
            return None

        sig = inspect.signature(func)
        fields = {}
        for param_name, hint in hints.items():
            param = sig.parameters.get(param_name)
            if param is None:
                raise ValueError(
                    f"Handler for '{route.name}' has type hint for '{param_name}' "
                    f"which is not in the function signature"
                )
            elif param.default is inspect.Parameter.empty:
                fields[param_name] = (hint, ...)
            else:
                fields[param_name] = (hint, param.default)

        name = getattr(func, "__name__", type(func).__name__)
        meta.update(
            model=create_model(f"{name}_Model", **fields),  # type: ignore[call-overload]
            hints=hints,
            signature=sig,
        )
        return meta

    def wrap_handler(self, router: Router, route: Route, call_next: Callable):
        """Validate annotated parameters with the cached Pydantic model before calling."""
        meta = self._model_for(route, call_next)
        if not meta:
            return call_next

        model = meta["model"]
        sig = meta["signature"]
        hints = meta["hints"]

        def wrapper(*args, **kwargs):
            cfg = self.configuration(route.name)
            if cfg.get("disabled"):
                return call_next(*args, **kwargs)

            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()
            args_to_validate = {k: v for k, v in bound.arguments.items() if k in hints}
            other_args = {k: v for k, v in bound.arguments.items() if k not in hints}
            try:
                validated = model(**args_to_validate)
            except ValidationError as exc:
                raise ValidationError.from_exception_data(
                    title=f"Validation error in {route.name}",
                    line_errors=exc.errors(),
                ) from exc

            final_args = other_args.copy()
            for key, value in validated:
                final_args[key] = value
            return call_next(**final_args)

        return wrapper

    def get_model(self, route: Route) -> Optional[Tuple[str, Any]]:
        """Return the Pydantic model of the route's handler if not disabled."""
        if self.configuration(route.name).get("disabled"):
            return None
        if not callable(route.callback) or isinstance(route.callback, dict):
            return None
        meta = self._model_for(route, route.callback)
        if not meta:
            return None
        return ("pydantic_model", meta["model"])

    def route_metadata(self, router: Router, route: Route) -> Dict[str, Any]:
        """Return pydantic metadata for introspection."""
        found = self.get_model(route)
        if found is None:
            return {}
        meta = self._model_for(route, route.callback)
        return {"model": found[1], "hints": meta["hints"] if meta else {}}


Router.register_plugin(PydanticPlugin)
