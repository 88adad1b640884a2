"""Tests for tags and URL regeneration."""

import pytest

from smartpath import BaseRouter, Request


def make_router(uri="/", method="get", **options):
    options.setdefault("autosend", False)
    return BaseRouter(Request(uri, method), **options)


def test_tagged_route_builds_urls():
    router = make_router()
    router.on("/user/:id").tag("user")
    assert router.url("user", {"id": 123}) == "/user/123"
    assert router.url("user") == "/user"
    assert router.url("user", {"id": 123, "extra": "x"}) == "/user/123"


def test_optional_segments_are_flattened():
    router = make_router()
    route = router.on("/element(/:id)").tag("element")
    assert route.get_url({"id": 5}) == "/element/5"
    assert route.get_url() == "/element"


def test_multiple_parameters():
    router = make_router()
    router.on("/blog/:year/:slug").tag("post")
    assert router.url("post", {"year": 2024, "slug": "hello"}) == "/blog/2024/hello"
    assert router.url("post", {"slug": "hello"}) == "/blog/hello"


def test_static_and_root_routes():
    router = make_router()
    assert router.on("/").get_url() == "/"
    assert router.on("/about/").get_url({"unused": 1}) == "/about"


def test_unknown_tag():
    router = make_router()
    router.on("/x").tag("x")
    assert router.tagged("nope") is False
    assert router.url("nope", {"id": 1}) == ""


def test_last_tag_wins():
    router = make_router()
    first = router.on("/first").tag("page")
    second = router.on("/second").tag("page")
    assert router.tagged("page") is second
    assert router.url("page") == "/second"
    assert first.tag_name == "page"


def test_tag_inside_group_includes_prefix():
    router = make_router("/admin/users/1")
    router.group("/admin", lambda: router.on("/users/:id").tag("admin.user"))
    assert router.url("admin.user", {"id": 7}) == "/admin/users/7"


def test_members_lists_routes_and_tags():
    router = make_router()
    assert router.members() == {}
    router.on("/user/:id", name="user_detail").tag("user")
    info = router.members()
    assert info["router"] is router
    assert info["tags"] == {"user": "user_detail"}
    (entry,) = info["routes"]
    assert entry["pattern"] == "/user/:id"
    assert entry["methods"] == ["get"]
    assert entry["dynamic"] is True
    assert entry["tag"] == "user"


def test_none_parameters_are_treated_as_absent():
    router = make_router()
    route = router.on("/user/:id(/:tab)").tag("user")
    assert route.get_url({"id": None}) == "/user"
    assert router.url("user", {"id": 3, "tab": None}) == "/user/3"


def test_routes_dropped_by_reset_cannot_be_tagged():
    router = make_router()
    old = router.on("/old")
    router.reset()
    router.on("/new")
    with pytest.raises(ValueError, match="not registered"):
        old.tag("t")
    assert router.tagged("t") is False
    assert old.tag_name == ""


def test_foreign_route_cannot_be_tagged():
    router = make_router()
    other = make_router()
    router.on("/mine")
    stranger = other.on("/theirs")
    with pytest.raises(ValueError):
        router.register_tag("t", stranger)
    assert router.tagged("t") is False
