"""Request/response collaborators consumed by the router.

Only the narrow surface the router needs: the current path and method on the
way in, an accumulating body with status, content type and preload links on
the way out. Hosts can hand the router their own objects exposing the same
methods.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

__all__ = ["Request", "Response", "View", "TYPE_HTML", "TYPE_JSON", "TYPE_TEXT"]

TYPE_HTML = "text/html"
TYPE_JSON = "application/json"
TYPE_TEXT = "text/plain"


class Request:
    """Current request path (query string stripped) and lowercased method."""

    __slots__ = ("uri", "method")

    def __init__(self, uri: str = "/", method: str = "get") -> None:
        self.uri = urlsplit(uri or "/").path or "/"
        self.method = (method or "get").lower()

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "Request":
        return cls(environ.get("PATH_INFO") or "/", environ.get("REQUEST_METHOD") or "get")

    def __repr__(self) -> str:
        return f"Request({self.method.upper()} {self.uri})"


class Response:
    """Accumulating response sink.

    ``send()`` hands ``(status, headers, body)`` to ``sink`` once; later calls
    are ignored until ``reset()``.
    """

    def __init__(self, sink: Optional[Callable[[str, List[Tuple[str, str]], str], Any]] = None):
        self.sink = sink
        self.reset()

    def reset(self) -> None:
        self._chunks: List[str] = []
        self.status_code = 200
        self.status_message = "OK"
        self.content_type: Optional[str] = None
        self.links: List[str] = []
        self.sent = False

    def add(self, content: Any) -> "Response":
        if content is None or isinstance(content, bool):
            return self
        self._chunks.append(content if isinstance(content, str) else str(content))
        return self

    def body(self) -> str:
        return "".join(self._chunks)

    def status(self, code: int, message: Optional[str] = None) -> "Response":
        self.status_code = int(code)
        self.status_message = message or ""
        return self

    def type(self, mime: str) -> "Response":
        self.content_type = mime
        return self

    def push(self, links: Union[str, Iterable[str], Dict[str, str]], type: str = "text") -> "Response":  # noqa: A002
        """Declare resources for preload (``Link: <url>; rel=preload; as=<type>``)."""
        if isinstance(links, str):
            items = [(links, type)]
        elif isinstance(links, dict):
            items = list(links.items())
        else:
            items = [(link, type) for link in links]
        for url, kind in items:
            self.links.append(f"<{url}>; rel=preload; as={kind}")
        return self

    def error(self, code: int, message: str = "Application Error") -> "Response":
        self._chunks = [message]
        return self.status(code, message)

    def headers(self) -> List[Tuple[str, str]]:
        headers = [("Content-Type", self.content_type or TYPE_HTML)]
        headers.extend(("Link", link) for link in self.links)
        return headers

    def send(self) -> None:
        if self.sent:
            return
        self.sent = True
        if self.sink is not None:
            status = f"{self.status_code} {self.status_message}".strip()
            self.sink(status, self.headers(), self.body())


class View:
    """Renderable handler value; subclasses implement ``render()``."""

    def render(self) -> str:  # pragma: no cover - abstract
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()
