import json

import httpx
import pytest

from review_core.agents.chat_session import ChatSession, create_session
from review_core.config.session import SessionConfig
from review_core.domain.exceptions import (
    ApiError,
    ConfigurationError,
    NetworkError,
    RateLimitError,
    RequestContractError,
)
from review_core.domain.models import ChatOutcome, ChatReply, ConversationRef
from review_core.providers.openai_client import ChatCompletionsAPI


API_KEY = "azure-test-key-0001"


def _config(**kw) -> SessionConfig:
    base = dict(
        system_message="You are a reviewer.",
        model="gpt-4",
        timeout_ms=3000,
        retries=2,
        api_base_url="https://example.openai.azure.com/openai/deployments/gpt-4",
        retry_backoff_seconds=0,
    )
    base.update(kw)
    return SessionConfig(**base)


class RecordingReporter:
    def __init__(self):
        self.infos = []
        self.warnings = []
        self.failures = []

    def info(self, message, **fields):
        self.infos.append((message, fields))

    def warning(self, message, exc_info=None, **fields):
        self.warnings.append((message, fields))

    def set_failed(self, message, **fields):
        self.failures.append(message)


class FakeTransport:
    name = "fake"

    def __init__(self, *results):
        self._results = list(results)
        self.calls = []
        self.closed = False

    def send_message(self, text, options):
        self.calls.append((text, options))
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, BaseException):
            raise result
        return result

    def close(self):
        self.closed = True


def _session(transport, reporter=None, **kw) -> ChatSession:
    return ChatSession(_config(**kw), API_KEY, transport=transport, reporter=reporter or RecordingReporter())


def test_empty_message_returns_empty_outcome_without_network():
    transport = FakeTransport(ChatReply(id="m1", conversation_id="c1", text="x"))
    session = _session(transport)
    outcome = session.chat("", ConversationRef(parent_message_id="p", conversation_id="c"))
    assert outcome == ChatOutcome("", ConversationRef())
    assert transport.calls == []


def test_lgtm_reply_strips_with_prefix_and_returns_new_ref():
    transport = FakeTransport(ChatReply(id="m1", conversation_id="c1", text="with LGTM!"))
    session = _session(transport)
    text, ref = session.chat("LGTM!", ConversationRef())
    assert text == "LGTM!"
    assert ref == ConversationRef(parent_message_id="m1", conversation_id="c1")
    assert ref.to_dict() == {"parentMessageId": "m1", "conversationId": "c1"}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("with with nested", "with nested"),
        ("With capital", "With capital"),
        ("without prefix", "without prefix"),
        ("  with leading space", "  with leading space"),
    ],
)
def test_with_prefix_is_stripped_exactly_once(raw, expected):
    session = _session(FakeTransport(ChatReply(id="m1", conversation_id="c1", text=raw)))
    assert session.chat("hi").text == expected


def test_parent_message_id_and_timeout_are_threaded():
    transport = FakeTransport(ChatReply(id="m2", conversation_id="c1", text="ok"))
    session = _session(transport)
    session.chat("follow up", ConversationRef(parent_message_id="m1", conversation_id="c1"))
    text, options = transport.calls[0]
    assert text == "follow up"
    assert options.parent_message_id == "m1"
    assert options.timeout_ms == 3000

    session.chat("fresh", ConversationRef())
    assert transport.calls[1][1].parent_message_id is None


def test_provider_errors_exhaust_retries_and_return_empty():
    reporter = RecordingReporter()
    transport = FakeTransport(RateLimitError(code="RATE_LIMIT", message="slow down"))
    session = _session(transport, reporter=reporter, retries=2)
    outcome = session.chat("review", ConversationRef())
    assert outcome == ChatOutcome.empty()
    assert len(transport.calls) == 3
    assert reporter.warnings
    assert reporter.warnings[-1][1]["attempts"] == 3
    assert reporter.failures == []


def test_zero_retries_means_single_attempt():
    transport = FakeTransport(NetworkError(code="NETWORK_ERROR", message="down"))
    session = _session(transport, retries=0)
    assert session.chat("review") == ChatOutcome.empty()
    assert len(transport.calls) == 1


def test_transient_failure_then_success():
    transport = FakeTransport(
        NetworkError(code="NETWORK_ERROR", message="reset"),
        ApiError(code="API_ERROR", message="502", http_status=502),
        ChatReply(id="m9", conversation_id="c9", text="fine"),
    )
    reporter = RecordingReporter()
    session = _session(transport, reporter=reporter, retries=2)
    text, ref = session.chat("review")
    assert text == "fine"
    assert ref.parent_message_id == "m9"
    assert len(transport.calls) == 3
    assert reporter.warnings == []
    retries_logged = [m for m, _ in reporter.infos if m == "Retrying openai sendMessage"]
    assert len(retries_logged) == 2


def test_unexpected_error_is_logged_not_retried():
    reporter = RecordingReporter()
    transport = FakeTransport(RuntimeError("bug in transport"))
    session = _session(transport, reporter=reporter, retries=3)
    assert session.chat("review") == ChatOutcome.empty()
    assert len(transport.calls) == 1
    assert "bug in transport" in reporter.warnings[0][0]


def test_contract_violation_propagates_without_retry():
    transport = FakeTransport(RequestContractError("bad shape"))
    session = _session(transport, retries=3)
    with pytest.raises(RequestContractError):
        session.chat("review")
    assert len(transport.calls) == 1


def test_null_reply_is_reported():
    reporter = RecordingReporter()
    session = _session(FakeTransport(None), reporter=reporter)
    assert session.chat("review") == ChatOutcome.empty()
    assert reporter.warnings[0][0] == "openai response is null"


def test_timing_is_reported():
    reporter = RecordingReporter()
    session = _session(FakeTransport(ChatReply(id="m1", conversation_id="c1", text="ok")), reporter=reporter)
    session.chat("review")
    timing = [f for m, f in reporter.infos if m == "openai sendMessage (including retries) response time"]
    assert timing and timing[0]["elapsed_ms"] >= 0
    assert timing[0]["attempts"] == 1


@pytest.mark.parametrize("api_key", [None, ""])
def test_missing_credential_fails_construction(api_key):
    with pytest.raises(ConfigurationError) as exc:
        ChatSession(_config(), api_key, transport=FakeTransport(None))
    assert exc.value.code == "MISSING_API_KEY"


def test_closed_session_reports_fatal_precondition():
    reporter = RecordingReporter()
    transport = FakeTransport(ChatReply(id="m1", conversation_id="c1", text="ok"))
    with _session(transport, reporter=reporter) as session:
        pass
    assert transport.closed
    assert session.chat("review") == ChatOutcome.empty()
    assert reporter.failures == ["The OpenAI API is not initialized"]
    assert transport.calls == []


def test_end_to_end_over_http_with_azure_rewrite():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-42",
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "with LGTM!"}}],
            },
        )

    config = _config()
    api = ChatCompletionsAPI(
        config,
        API_KEY,
        token_counter=lambda s: len(s.split()),
        http_transport=httpx.MockTransport(handler),
    )
    session = ChatSession(config, API_KEY, transport=api, reporter=RecordingReporter())

    text, ref = session.chat("LGTM!")
    assert text == "LGTM!"
    assert ref.parent_message_id == "chatcmpl-42"
    assert ref.conversation_id

    text2, ref2 = session.chat("and now?", ref)
    assert ref2.conversation_id == ref.conversation_id
    assert len(seen) == 2
    history = [m["content"] for m in json.loads(seen[1].content)["messages"][1:]]
    assert history == ["LGTM!", "with LGTM!", "and now?"]
    for request in seen:
        assert request.headers["api-key"] == API_KEY
        assert "authorization" not in request.headers
        assert request.url.params["api-version"] == "2023-03-15-preview"


def test_end_to_end_provider_errors_over_http():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="internal error")

    config = _config(retries=2)
    api = ChatCompletionsAPI(
        config,
        API_KEY,
        token_counter=lambda s: len(s.split()),
        http_transport=httpx.MockTransport(handler),
    )
    session = ChatSession(config, API_KEY, transport=api, reporter=RecordingReporter())
    assert session.chat("review") == ChatOutcome.empty()
    assert len(calls) == 3


def test_create_session_picks_model_and_credential():
    class SettingsStub:
        azure_api_key = API_KEY
        api_base_url = "https://example.openai.azure.com"
        api_version = "2024-02-01"
        openai_light_model = "gpt-3.5-turbo"
        openai_heavy_model = "gpt-4"
        openai_model_temperature = 0.2
        openai_retries = 1
        openai_timeout_ms = 60000
        retry_backoff_seconds = 0
        system_message = "sys"
        language = "ja-JP"
        debug = False
        message_store = "memory"

    light = create_session("light", cfg=SettingsStub(), reporter=RecordingReporter())
    heavy = create_session("heavy", cfg=SettingsStub(), reporter=RecordingReporter())
    assert light.config.model == "gpt-3.5-turbo"
    assert light.config.token_limits.max_tokens == 4000
    assert heavy.config.model == "gpt-4"
    assert heavy.config.token_limits.max_tokens == 8000
    assert heavy.config.language == "ja-JP"
    light.close()
    heavy.close()

    SettingsStub.azure_api_key = None
    with pytest.raises(ConfigurationError):
        create_session(cfg=SettingsStub())
