"""Plugin package initialiser.

Kept lightweight: concrete plugins are not imported here so that importing
``smartpath.plugins`` stays side-effect free. The ``logging`` and
``pydantic`` modules self-register when imported (``smartpath.__init__``
imports both eagerly).
"""

__all__: list[str] = []
