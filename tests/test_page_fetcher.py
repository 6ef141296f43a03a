# tests/test_page_fetcher.py
from __future__ import annotations

import httpx
import pytest
import respx
from httpx import Response

from gscrape.exceptions import ResponseParseError, TransportError
from gscrape.fetch.client import (
    PageFetcher,
    PageStatus,
    build_url,
    classify_status,
    parse_page,
)

ENDPOINT = "https://cse.test/customsearch/v1"


def _page(links: list[str], next_start: int | None = None) -> dict:
    body: dict = {"items": [{"link": u, "title": "t"} for u in links]}
    if next_start is not None:
        body["queries"] = {"nextPage": [{"startIndex": next_start, "count": 10}]}
    return body


@pytest.fixture
def fetcher():
    with PageFetcher("secret-key", "engine-id", endpoint=ENDPOINT) as f:
        yield f


# -------------------------------- request shape ---------------------------------------


def test_build_url_encodes_spaces_as_plus():
    url = build_url(ENDPOINT, api_key="k", cx="c", query="foo bar baz", cursor=11, page_size=10)
    assert url.startswith(ENDPOINT + "?")
    assert "q=foo+bar+baz" in url
    assert "start=11" in url
    assert "num=10" in url


@respx.mock
def test_request_carries_all_params(fetcher):
    route = respx.get(host="cse.test", path="/customsearch/v1").mock(
        return_value=Response(200, json=_page([]))
    )

    fetcher.fetch('intitle:"index of" backup', 21)

    req = route.calls.last.request
    params = req.url.params
    assert params["key"] == "secret-key"
    assert params["cx"] == "engine-id"
    assert params["q"] == 'intitle:"index of" backup'
    assert params["start"] == "21"
    assert params["num"] == "10"
    assert "+" in str(req.url)


# -------------------------------- classification --------------------------------------


@respx.mock
def test_success_parses_items_and_next_cursor(fetcher):
    respx.get(host="cse.test", path="/customsearch/v1").mock(
        return_value=Response(200, json=_page(["https://a.test/", "https://b.test/"], 11))
    )

    res = fetcher.fetch("foo", 1)
    assert res.ok
    assert res.status is PageStatus.SUCCESS
    assert res.http_status == 200
    assert res.items == ["https://a.test/", "https://b.test/"]
    assert res.next_cursor == 11


@respx.mock
def test_success_without_items_or_next_page(fetcher):
    respx.get(host="cse.test", path="/customsearch/v1").mock(
        return_value=Response(200, json={"kind": "customsearch#search"})
    )

    res = fetcher.fetch("foo", 1)
    assert res.ok
    assert res.items == []
    assert res.next_cursor is None


@pytest.mark.parametrize(
    "status, expected",
    [
        (400, PageStatus.MALFORMED),
        (429, PageStatus.RATE_LIMITED),
        (403, PageStatus.UNEXPECTED),
        (404, PageStatus.UNEXPECTED),
        (500, PageStatus.UNEXPECTED),
        (503, PageStatus.UNEXPECTED),
    ],
)
@respx.mock
def test_non_success_statuses_classified(fetcher, status, expected):
    respx.get(host="cse.test", path="/customsearch/v1").mock(return_value=Response(status))

    res = fetcher.fetch("foo", 1)
    assert res.status is expected
    assert res.http_status == status
    assert res.items == []
    assert not res.ok


def test_classify_status_table():
    assert classify_status(200) is PageStatus.SUCCESS
    assert classify_status(201) is PageStatus.UNEXPECTED
    assert classify_status(400) is PageStatus.MALFORMED
    assert classify_status(429) is PageStatus.RATE_LIMITED


# -------------------------------- failures --------------------------------------------


@respx.mock
def test_invalid_json_is_parse_error(fetcher):
    respx.get(host="cse.test", path="/customsearch/v1").mock(
        return_value=Response(200, text="<html>not json</html>")
    )
    with pytest.raises(ResponseParseError):
        fetcher.fetch("foo", 1)


@respx.mock
def test_transport_failure_is_transport_error_without_key(fetcher):
    respx.get(host="cse.test", path="/customsearch/v1").mock(
        side_effect=httpx.ConnectError("connection refused")
    )
    with pytest.raises(TransportError) as ei:
        fetcher.fetch("foo", 1)
    assert "secret-key" not in str(ei.value)


@pytest.mark.parametrize("api_key, cx", [("", "cx"), ("key", "")])
def test_missing_credentials_rejected(api_key, cx):
    with pytest.raises(ValueError):
        PageFetcher(api_key, cx, endpoint=ENDPOINT)


def test_injected_client_not_closed_by_fetcher():
    client = httpx.Client()
    try:
        with PageFetcher("k", "c", endpoint=ENDPOINT, client=client):
            pass
        assert not client.is_closed
    finally:
        client.close()


# -------------------------------- parse_page ------------------------------------------


def test_parse_page_skips_items_without_links():
    links, nxt = parse_page(
        {
            "items": [
                {"link": "https://ok.test/"},
                {"title": "no link"},
                {"link": ""},
                {"link": 42},
                "junk",
            ]
        }
    )
    assert links == ["https://ok.test/"]
    assert nxt is None


@pytest.mark.parametrize(
    "next_page, expected",
    [
        ([{"startIndex": 11}], 11),
        ([{"startIndex": "21"}], 21),
        ([{"startIndex": True}], None),
        ([{"startIndex": None}], None),
        ([], None),
        ("garbage", None),
    ],
)
def test_parse_page_next_cursor(next_page, expected):
    _, nxt = parse_page({"items": [], "queries": {"nextPage": next_page}})
    assert nxt == expected


@pytest.mark.parametrize("payload", [[], "text", None, {"items": "nope"}])
def test_parse_page_rejects_bad_shapes(payload):
    with pytest.raises(ResponseParseError):
        parse_page(payload)
