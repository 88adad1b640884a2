"""Tests for route construction, matching and the run protocol."""

import sys

import pytest

from smartpath import BaseRouter, MalformedSchemaError, Request, Route, View


def make_router(uri="/", method="get", **options):
    options.setdefault("autosend", False)
    return BaseRouter(Request(uri, method), **options)


class Greeting(View):
    def __init__(self, who):
        self.who = who

    def render(self):
        return f"<h1>Hello {self.who}</h1>"


# ----------------------------------------------------------------------
# Construction and configuration
# ----------------------------------------------------------------------


def test_pattern_normalization():
    router = make_router()
    assert router.on("/test/(:a)").url_pattern == "/test(/:a)"
    assert router.on("users/").url_pattern == "/users"
    assert router.on("//a//b").url_pattern == "/a/b"
    root = router.on("/")
    assert root.url_pattern == ""
    assert root.name == "/"
    assert repr(root) == "<Route GET />"


def test_default_method_and_via_replaces_methods():
    router = make_router()
    route = router.on("/x")
    assert route.methods == {"get": True}
    assert route.match("/x")
    assert route.match("/x", "GET")

    route.via("POST", "put")
    assert route.methods == {"post": True, "put": True}
    assert not route.match("/x", "get")
    assert route.match("/x", "PUT")

    route.via("*")
    assert route.match("/x", "delete")
    assert route.match("/x", "patch")


def test_shortcut_constructors():
    router = make_router()
    assert router.get("/g").methods == {"get": True}
    assert router.post("/p").methods == {"post": True}
    assert router.any("/a").methods == {"*": True}
    mapped = router.map("/m", {"GET": lambda: "got", "Post": lambda: "posted"})
    assert mapped.methods == {"get": True, "post": True}
    assert set(mapped.callback) == {"get", "post"}


def test_static_match_ignores_trailing_slash():
    router = make_router()
    route = router.on("/about")
    assert not route.dynamic
    assert route.match("/about")
    assert route.match("/about/")
    assert not route.match("/about/team")
    assert not route.match("/abou")


def test_optional_segment_with_rule():
    router = make_router()
    route = router.on("/element(/:id)/?").rules({"id": r"\d+"})
    assert route.dynamic
    for url, expected in (("/element", {}), ("/element/", {}), ("/element/123", {"id": "123"})):
        assert route.match(url)
        assert route.extract_args(url) == expected
    assert not route.match("/element/foo")


def test_rules_merge_and_recompile():
    router = make_router()
    route = router.on("/u/:id/:tab")
    assert route.match("/u/abc/info")

    route.rules({"id": r"\d+"})
    assert not route.match("/u/abc/info")
    assert route.match("/u/12/info")

    route.rules({"id": "[a-z]+", "tab": "info|edit"})
    assert route.rule_map == {"id": "[a-z]+", "tab": "info|edit"}
    assert route.match("/u/abc/edit")
    assert not route.match("/u/12/edit")
    assert not route.match("/u/abc/delete")


def test_failed_rules_leave_route_untouched():
    router = make_router()
    route = router.on("/u/:id").rules({"id": r"\d+"})
    with pytest.raises(MalformedSchemaError):
        route.rules({"id": "("})
    assert route.rule_map == {"id": r"\d+"}
    assert route.match("/u/12")

    route.rules({"other": "x"})
    assert route.rule_map == {"id": r"\d+", "other": "x"}
    assert route.match("/u/12")
    assert not route.match("/u/ab")


def test_static_route_extracts_nothing():
    router = make_router()
    assert router.on("/plain").extract_args("/plain") == {}


def test_extract_args_only_named_values():
    router = make_router()
    route = router.on("/archive/:year(/:month)")
    assert route.extract_args("/archive/2024/05") == {"year": "2024", "month": "05"}
    assert route.extract_args("/archive/2024") == {"year": "2024"}


def test_route_as_decorator():
    router = make_router()

    @router.get("/deco")
    def handler():
        return "decorated"

    assert callable(handler)
    (route,) = router.routes()
    assert route.callback is handler
    assert route.run({}) == ["decorated"]


def test_with_replaces_handler():
    router = make_router()
    route = router.on("/w", lambda: "old").with_(lambda: "new")
    assert route.run({}) == ["new"]


def test_falsy_tag_clears_name_only():
    router = make_router()
    route = router.on("/home").tag("home")
    assert route.tag_name == "home"
    assert router.tagged("home") is route
    route.tag(None)
    assert route.tag_name == ""
    assert router.tagged("home") is route


def test_push_forwards_to_response():
    router = make_router()
    route = router.on("/app")
    assert route.push("/app.css", "style") is route
    route.push({"/app.js": "script"})
    assert router.response.links == [
        "</app.css>; rel=preload; as=style",
        "</app.js>; rel=preload; as=script",
    ]


# ----------------------------------------------------------------------
# Run protocol
# ----------------------------------------------------------------------


def test_handler_receives_named_arguments():
    router = make_router()
    route = router.on("/user/:id", lambda id: f"user {id}")
    assert route.run(route.extract_args("/user/7")) == ["user 7"]
    assert router.response.content_type == "text/html"


def test_middleware_order_with_echoed_output():
    router = make_router()

    def echo(text):
        def middleware():
            print(text, end="")

        return middleware

    def handler():
        print("[H]", end="")

    route = router.on("/page", handler)
    route.before(echo("[B1]")).before(echo("[B2]"))
    route.after(echo("[A1]")).after(echo("[A2]"))

    assert route.run({}) == ["[B2][B1][H][A1][A2]"]


def test_middleware_return_values_are_appended():
    router = make_router()
    route = router.on("/page", lambda: "[H]")
    route.before(lambda: "[B1]").before(lambda: "[B2]")
    route.after(lambda: "[A1]").after(lambda: "[A2]")
    assert route.run({}) == ["[B2][B1][H][A1][A2]"]


def test_before_abort_skips_handler_afters_and_end():
    router = make_router()
    calls = []
    router.on_event("end", lambda *args: calls.append("end"))

    def handler():
        calls.append("handler")
        return "H"

    def first():
        calls.append("b1")
        return False

    def second():
        calls.append("b2")
        return "B2"

    route = router.on("/guarded", handler)
    route.before(first).before(second).after(lambda: calls.append("after"))

    assert route.run({}) == [""]
    assert calls == ["b2", "b1"]
    # already written output stays on the response sink
    assert router.response.body() == "B2"


def test_after_abort_keeps_sink_side_effects():
    router = make_router()
    calls = []
    route = router.on("/late", lambda: "H")
    route.after(lambda: False).after(lambda: calls.append("a2"))

    assert route.run({}) == [""]
    assert calls == []
    assert router.response.body() == "H"


def test_echoed_text_can_be_dropped():
    router = make_router(append_echoed_text=False)

    def noisy():
        print("noise")
        return "ok"

    route = router.on("/quiet", noisy).before(lambda: print("more noise"))
    assert route.run({}) == ["ok"]


def test_method_map_picks_handler():
    router = make_router()
    route = router.map("/item", {"get": lambda: "got", "post": lambda: "posted"})
    assert route.run({}, "POST") == ["posted"]
    router.response.reset()
    assert route.run({}, "get") == ["got"]
    router.response.reset()
    # unmapped method: nothing is invoked
    assert route.run({}, "delete") == [""]


def test_view_is_rendered():
    router = make_router(response_default_type="text/x-view")
    route = router.on("/hello", Greeting("world"))
    assert route.run({}) == ["<h1>Hello world</h1>"]
    assert router.response.content_type == "text/x-view"


def test_literal_value_is_final_content():
    router = make_router()
    route = router.on("/lit", "plain text")
    assert route.run({}) == ["plain text"]
    assert router.response.content_type is None


def test_missing_handler_produces_empty_body():
    router = make_router()
    assert router.on("/nothing").run({}) == [""]


def test_lifecycle_events_order():
    router = make_router()
    seen = []
    router.on_event("start", lambda route, args, method: seen.append(("start", args, method)))
    router.on_event("before", lambda route, mw: seen.append(("before", mw.__name__)))
    router.on_event("after", lambda route, mw: seen.append(("after", mw.__name__)))
    router.on_event("end", lambda route, args, method: seen.append(("end", args, method)))

    def guard():
        return None

    def stamp():
        return None

    route = router.on("/ev/:id", lambda id: id).before(guard).after(stamp)
    route.run({"id": "1"}, "GET")
    assert seen == [
        ("start", {"id": "1"}, "get"),
        ("before", "guard"),
        ("after", "stamp"),
        ("end", {"id": "1"}, "get"),
    ]


def test_response_filter_is_applied():
    router = make_router()
    router.add_filter("core.route.response", str.upper)
    assert router.on("/f", lambda: "shout").run({}) == ["SHOUT"]

    custom = make_router(response_filter="my.filter")
    custom.add_filter("my.filter", lambda body: f"[{body}]")
    assert custom.on("/f", lambda: "wrapped").run({}) == ["[wrapped]"]


def test_run_if_match():
    router = make_router()
    route = router.on("/user/:id", lambda id: f"#{id}")
    assert route.run_if_match("/team/1") is None
    assert route.run_if_match("/user/1", "post") is None
    assert route.run_if_match("/user/1") == ["#1"]


def test_handler_exception_restores_stdout():
    router = make_router()
    original = sys.stdout

    def broken():
        print("partial")
        raise RuntimeError("boom")

    route = router.on("/broken", broken)
    with pytest.raises(RuntimeError):
        route.run({})
    assert sys.stdout is original


def test_route_requires_clean_schema():
    router = make_router()
    with pytest.raises(ValueError):
        Route(router, "/bad#fragment")
    assert list(router.routes()) == []
