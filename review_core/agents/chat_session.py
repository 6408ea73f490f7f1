"""审查机器人的会话客户端。

ChatSession 负责发送一条消息并返回归一化文本与新的会话标识：

- 空消息直接返回空结果，不发起网络调用。
- 通过 backoff 做有界重试，重试包装器返回 SendResult 标记结果，
  Provider 类错误在这里被吸收为空结果 + 告警日志，不会抛给调用方。
- 请求改写层的契约错误属于编程错误，不重试，直接向上抛出。
"""

import json
import time
from typing import Any, Dict, Literal, Optional

import backoff

from review_core.config.session import SessionConfig
from review_core.config.settings import settings
from review_core.domain.exceptions import ConfigurationError, ProviderError, RequestContractError
from review_core.domain.models import ChatOutcome, ConversationRef, SendOptions, SendResult
from review_core.infrastructure.logging.reporter import LogReporter, Reporter
from review_core.infrastructure.storage.message_store import create_message_store
from review_core.providers.base import ChatTransport
from review_core.providers.openai_client import ChatCompletionsAPI
from review_core.providers.request_rewriter import AzureRequestRewriter


# 模型偶尔会在回复开头多出 "with "
RESPONSE_PREFIX_QUIRK = "with "
MAX_BACKOFF_SECONDS = 30.0


class ChatSession:
    def __init__(
        self,
        config: SessionConfig,
        api_key: Optional[str],
        *,
        transport: Optional[ChatTransport] = None,
        reporter: Optional[Reporter] = None,
        cfg=None,
    ):
        if not api_key:
            raise ConfigurationError(
                code="MISSING_API_KEY",
                message="Unable to initialize the OpenAI API, 'AZURE_API_KEY' environment variable is not available",
            )
        self._config = config
        self._reporter = reporter or LogReporter()
        if transport is None:
            transport = create_transport(config, api_key, cfg)
        self._api: Optional[ChatTransport] = transport

    @property
    def config(self) -> SessionConfig:
        return self._config

    def __enter__(self) -> "ChatSession":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False

    def close(self) -> None:
        if self._api is not None:
            self._api.close()
            self._api = None

    def chat(self, message: str, ref: Optional[ConversationRef] = None) -> ChatOutcome:
        """发送一条消息，返回 (文本, 新的 ConversationRef)。

        失败时返回空文本与空 ConversationRef，并把原因写入观测通道。
        """

        if not message:
            return ChatOutcome.empty()
        ref = ref or ConversationRef()

        if self._api is None:
            self._reporter.set_failed("The OpenAI API is not initialized")
            return ChatOutcome.empty()

        options = SendOptions(
            timeout_ms=self._config.timeout_ms,
            parent_message_id=ref.parent_message_id,
        )
        start = time.monotonic()
        result = self._send_with_retries(message, options)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        reply = result.reply
        self._reporter.info(
            "openai response",
            response=_truncate(json.dumps(reply.to_log_dict(), ensure_ascii=False) if reply else "null"),
        )
        self._reporter.info(
            "openai sendMessage (including retries) response time",
            elapsed_ms=elapsed_ms,
            attempts=result.attempts,
        )

        if not result.ok:
            if result.error is None:
                self._reporter.warning("openai response is null", attempts=result.attempts)
            return ChatOutcome.empty()

        text = reply.text
        if text.startswith(RESPONSE_PREFIX_QUIRK):
            text = text[len(RESPONSE_PREFIX_QUIRK):]
        if self._config.debug:
            self._reporter.info("openai responses", text=text)

        return ChatOutcome(
            text=text,
            ref=ConversationRef(parent_message_id=reply.id, conversation_id=reply.conversation_id),
        )

    def _send_with_retries(self, message: str, options: SendOptions) -> SendResult:
        """带重试地调用底层 send_message，最多 retries + 1 次。"""

        attempts = 0
        api = self._api

        def _send():
            nonlocal attempts
            attempts += 1
            return api.send_message(message, options)

        send = backoff.on_exception(
            backoff.expo,
            ProviderError,
            max_tries=self._config.retries + 1,
            jitter=None,
            on_backoff=self._on_backoff,
            logger=None,
            factor=self._config.retry_backoff_seconds,
            max_value=MAX_BACKOFF_SECONDS,
        )(_send)

        try:
            return SendResult.success(send(), attempts)
        except ProviderError as e:
            self._reporter.warning(f"Failed to chat: {e}", code=e.code, attempts=attempts)
            return SendResult.failure(e, attempts)
        except RequestContractError:
            raise
        except Exception as e:  # noqa: BLE001 - 未知错误同样降级为空结果，但保留堆栈
            self._reporter.warning(
                f"Unexpected error while chatting: {e!r}",
                exc_info=True,
                attempts=attempts,
            )
            return SendResult.failure(e, attempts)

    def _on_backoff(self, details: Dict[str, Any]) -> None:
        self._reporter.info(
            "Retrying openai sendMessage",
            tries=details.get("tries"),
            wait_seconds=details.get("wait"),
            error=str(details.get("exception")),
        )


def create_transport(config: SessionConfig, api_key: str, cfg=None) -> ChatTransport:
    """根据配置创建挂好 Azure 改写钩子的传输层实例。"""

    cfg = cfg or settings
    rewriter = AzureRequestRewriter(api_key, api_version=cfg.api_version)
    return ChatCompletionsAPI(
        config,
        api_key,
        rewriter=rewriter,
        store=create_message_store(cfg.message_store),
    )


def create_session(
    model: Literal["light", "heavy"] = "heavy",
    *,
    cfg=None,
    reporter: Optional[Reporter] = None,
) -> ChatSession:
    """根据 Settings 创建 ChatSession，light 用于摘要，heavy 用于审查。"""

    cfg = cfg or settings
    model_name = cfg.openai_light_model if model == "light" else cfg.openai_heavy_model
    config = SessionConfig.from_settings(cfg, model=model_name)
    return ChatSession(config, cfg.azure_api_key, reporter=reporter, cfg=cfg)


def _truncate(text: str, limit: int = 2000) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
