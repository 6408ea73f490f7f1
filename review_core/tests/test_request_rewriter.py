import httpx
import pytest

from review_core.domain.exceptions import RequestContractError
from review_core.providers.request_rewriter import AzureRequestRewriter


API_KEY = "azure-test-key-0001"


def _openai_headers() -> httpx.Headers:
    return httpx.Headers(
        {
            "Authorization": "Bearer sk-openai",
            "OpenAI-Organization": "org-1",
            "Content-Type": "application/json",
            "X-Trace": "abc",
        }
    )


def test_rewrite_url_and_headers_pair():
    rw = AzureRequestRewriter(API_KEY)
    url, headers = rw.rewrite("https://example.openai.azure.com/chat/completions", _openai_headers())
    assert url.params["api-version"] == "2023-03-15-preview"
    assert url.path == "/chat/completions"
    assert headers["api-key"] == API_KEY
    assert "authorization" not in headers
    assert "openai-organization" not in headers
    assert headers["content-type"] == "application/json"
    assert headers["x-trace"] == "abc"


def test_rewrite_url_without_headers_creates_canonical_container():
    rw = AzureRequestRewriter(API_KEY, api_version="2024-02-01")
    url, headers = rw.rewrite(httpx.URL("https://example.com/chat/completions?foo=1"))
    assert isinstance(headers, httpx.Headers)
    assert url.params["foo"] == "1"
    assert url.params["api-version"] == "2024-02-01"
    assert headers["api-key"] == API_KEY


def test_rewrite_request_in_place_keeps_body_and_method():
    rw = AzureRequestRewriter(API_KEY)
    req = httpx.Request(
        "POST",
        "https://example.com/chat/completions",
        headers=_openai_headers(),
        json={"model": "gpt-4"},
    )
    body = req.read()
    out = rw.rewrite(req)
    assert out is req
    assert req.method == "POST"
    assert req.read() == body
    assert req.url.params.get_list("api-version") == ["2023-03-15-preview"]
    assert req.headers["api-key"] == API_KEY
    assert "Authorization" not in req.headers
    assert "OpenAI-Organization" not in req.headers
    assert req.headers["X-Trace"] == "abc"


def test_rewrite_rejects_plain_dict_headers():
    rw = AzureRequestRewriter(API_KEY)
    with pytest.raises(RequestContractError):
        rw.rewrite("https://example.com", {"Authorization": "Bearer x"})


def test_rewrite_rejects_unknown_shape():
    rw = AzureRequestRewriter(API_KEY)
    with pytest.raises(RequestContractError) as exc:
        rw.rewrite(42)
    assert isinstance(exc.value, TypeError)
    assert exc.value.code == "INVALID_REQUEST_SHAPE"


def test_rewrite_rejects_request_with_extra_headers():
    rw = AzureRequestRewriter(API_KEY)
    req = httpx.Request("GET", "https://example.com")
    with pytest.raises(RequestContractError):
        rw.rewrite(req, httpx.Headers())


def test_rewriter_as_event_hook_applies_once_per_request():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    rw = AzureRequestRewriter(API_KEY)
    with httpx.Client(transport=httpx.MockTransport(handler), event_hooks={"request": [rw]}) as client:
        client.post(
            "https://example.com/chat/completions",
            headers={"Authorization": "Bearer sk-openai", "OpenAI-Organization": "org-1"},
            json={"x": 1},
        )
        client.post("https://example.com/chat/completions", json={"x": 2})

    assert len(seen) == 2
    for request in seen:
        assert request.url.params.get_list("api-version") == ["2023-03-15-preview"]
        assert request.headers["api-key"] == API_KEY
        assert "authorization" not in request.headers
        assert "openai-organization" not in request.headers
