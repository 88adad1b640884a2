"""Tests for the request/response collaborators and the event hub."""

from smartpath import EventHub, Request, Response, View


def test_request_normalizes_path_and_method():
    request = Request("/search?q=routing#top", "POST")
    assert request.uri == "/search"
    assert request.method == "post"
    assert Request().uri == "/"
    assert Request("").uri == "/"
    assert repr(request) == "Request(POST /search)"


def test_request_from_environ():
    request = Request.from_environ({"PATH_INFO": "/api/items", "REQUEST_METHOD": "DELETE"})
    assert request.uri == "/api/items"
    assert request.method == "delete"
    assert Request.from_environ({}).uri == "/"


def test_response_add_ignores_none_and_booleans():
    response = Response()
    response.add("a").add(None).add(True).add(False).add(3).add("")
    assert response.body() == "a3"


def test_response_status_type_and_headers():
    response = Response()
    assert response.status_code == 200
    response.status(201, "Created").type("application/json")
    response.push({"/app.js": "script"}).push("/font.woff2", "font")
    assert response.status_code == 201
    assert response.headers() == [
        ("Content-Type", "application/json"),
        ("Link", "</app.js>; rel=preload; as=script"),
        ("Link", "</font.woff2>; rel=preload; as=font"),
    ]


def test_response_error_replaces_body():
    response = Response()
    response.add("partial output")
    response.error(500)
    assert response.body() == "Application Error"
    assert response.status_code == 500


def test_response_send_is_idempotent_until_reset():
    sent = []
    response = Response(sink=lambda status, headers, body: sent.append((status, headers, body)))
    response.add("hello")
    response.send()
    response.send()
    assert sent == [("200 OK", [("Content-Type", "text/html")], "hello")]
    response.reset()
    assert response.body() == ""
    response.send()
    assert len(sent) == 2


def test_response_without_sink():
    response = Response()
    response.send()
    assert response.sent is True


def test_view_renders_through_str():
    class Page(View):
        def render(self):
            return "<p>page</p>"

    assert str(Page()) == "<p>page</p>"


def test_event_hub_trigger_collects_results():
    hub = EventHub()
    hub.on("start", lambda value: value * 2)
    hub.on("start", lambda value: None)
    hub.on("start", lambda value: False)
    hub.on("start", lambda value: 0)
    assert hub.trigger("start", 4) == [8, 0]
    assert hub.trigger("unknown") == []


def test_event_keys_are_stringified():
    hub = EventHub()
    hub.on(404, lambda: "missing")
    assert hub.trigger("404") == ["missing"]


def test_event_hub_off():
    hub = EventHub()

    def listener():
        return "one"

    hub.on("end", listener)
    hub.on("end", lambda: "two")
    hub.off("end", listener)
    assert hub.trigger("end") == ["two"]
    hub.off("end")
    assert hub.trigger("end") == []


def test_filters_chain_in_order():
    hub = EventHub()
    hub.add_filter("body", str.strip)
    hub.add_filter("body", str.title)
    assert hub.filter_with("body", "  hello world ") == "Hello World"
    assert hub.filter_with("other", " untouched ") == " untouched "
    hub.clear()
    assert hub.filter_with("body", " raw ") == " raw "
