"""OpenAI 兼容 chat/completions 传输层。

本模块负责：

1. 沿 parent_message_id 从消息仓库回溯历史，在 token 预算内拼出 messages。
2. 按 OpenAI 默认约定构造请求（Bearer 认证、组织头），
   再由 AzureRequestRewriter 事件钩子改写为 Azure 约定。
3. 调用 HTTP 接口，把网络/限流/服务端错误映射为统一的业务异常。
4. 将响应 JSON 解析为 ChatReply，并把本轮的用户消息与回复写回仓库。
"""

from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import httpx

from review_core.config.session import SessionConfig
from review_core.domain.exceptions import ApiError, NetworkError, RateLimitError
from review_core.domain.models import ChatReply, SendOptions, StoredMessage
from review_core.infrastructure.logging.logger import logger
from review_core.infrastructure.storage.message_store import InMemoryMessageStore, MessageStore
from review_core.providers.request_rewriter import AzureRequestRewriter
from review_core.providers.tokenizer import TokenCounter, count_tokens


class ChatCompletionsAPI:
    """chat/completions 客户端，实现 ChatTransport 协议。

    会话历史由传输层的 MessageStore 保存，ChatSession 只透传
    parent_message_id；调用方仍是 ConversationRef 的唯一持有者。
    """

    name = "azure-openai"

    def __init__(
        self,
        config: SessionConfig,
        api_key: str,
        *,
        rewriter: Optional[AzureRequestRewriter] = None,
        store: Optional[MessageStore] = None,
        token_counter: Optional[TokenCounter] = None,
        organization: Optional[str] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        self._config = config
        self._api_key = api_key
        self._organization = organization
        self._store = store if store is not None else InMemoryMessageStore()
        self._count_tokens = token_counter or count_tokens
        self._system_message = config.build_system_message()
        self._rewriter = rewriter or AzureRequestRewriter(api_key)
        self._client = httpx.Client(
            timeout=config.timeout_ms / 1000,
            trust_env=False,
            transport=http_transport,
            event_hooks={"request": [self._rewriter]},
        )

    @property
    def system_message(self) -> str:
        return self._system_message

    def send_message(self, text: str, options: SendOptions) -> ChatReply:
        """发送一条用户消息并返回助手回复。"""

        conversation_id = self._resolve_conversation_id(options.parent_message_id)
        user_msg = StoredMessage(
            id=str(uuid4()),
            conversation_id=conversation_id,
            role="user",
            text=text,
            parent_message_id=options.parent_message_id,
        )
        messages, num_tokens = self._build_messages(text, options.parent_message_id)
        payload = self._build_payload(messages, num_tokens)
        if self._config.debug:
            logger.debug(
                "chat/completions request",
                extra={"extra": {"num_tokens": num_tokens, "messages": len(messages)}},
            )

        try:
            resp = self._client.post(
                f"{self._config.api_base_url}/chat/completions",
                json=payload,
                headers=self._default_headers(),
                timeout=options.timeout_ms / 1000,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(code="TIMEOUT", message=f"request timed out: {e}")
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝等
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Azure OpenAI rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(code="INVALID_RESPONSE", message=f"response is not JSON: {e}", http_status=502)

        reply = self._parse_response(data, user_msg)
        self._store.put(user_msg)
        self._store.put(
            StoredMessage(
                id=reply.id,
                conversation_id=reply.conversation_id,
                role="assistant",
                text=reply.text,
                parent_message_id=user_msg.id,
            )
        )
        return reply

    def close(self) -> None:
        self._client.close()

    def _default_headers(self) -> Dict[str, str]:
        # OpenAI 默认约定，Azure 下会被改写层替换
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self._organization:
            headers["OpenAI-Organization"] = self._organization
        return headers

    def _resolve_conversation_id(self, parent_message_id: Optional[str]) -> str:
        if parent_message_id:
            parent = self._store.get(parent_message_id)
            if parent is not None:
                return parent.conversation_id
            logger.info(
                "Parent message not found, starting new conversation",
                extra={"extra": {"parent_message_id": parent_message_id}},
            )
        return str(uuid4())

    def _build_messages(
        self, text: str, parent_message_id: Optional[str]
    ) -> Tuple[List[Dict[str, str]], int]:
        """拼出 system + 历史 + 当前用户消息，历史从最新往回取，直到超出预算。"""

        limits = self._config.token_limits
        budget = limits.max_tokens - limits.response_tokens
        num_tokens = self._count_tokens(self._system_message) + self._count_tokens(text)

        history: List[Dict[str, str]] = []
        parent_id = parent_message_id
        while parent_id:
            parent = self._store.get(parent_id)
            if parent is None:
                break
            cost = self._count_tokens(parent.text)
            if num_tokens + cost > budget:
                break
            history.insert(0, {"role": parent.role, "content": parent.text})
            num_tokens += cost
            parent_id = parent.parent_message_id

        messages = [{"role": "system", "content": self._system_message}]
        messages.extend(history)
        messages.append({"role": "user", "content": text})
        return messages, num_tokens

    def _build_payload(self, messages: List[Dict[str, str]], num_tokens: int) -> Dict[str, Any]:
        limits = self._config.token_limits
        max_tokens = max(1, min(limits.max_tokens - num_tokens, limits.response_tokens))
        return {
            "model": self._config.model,
            "messages": messages,
            "temperature": self._config.temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }

    def _parse_response(self, data: Any, user_msg: StoredMessage) -> ChatReply:
        """将 chat/completions 响应 JSON 解析为 ChatReply。"""

        if not isinstance(data, dict):
            raise ApiError(code="INVALID_RESPONSE", message="response body is not an object", http_status=502)
        choices = data.get("choices") or []
        if not choices:
            raise ApiError(code="INVALID_RESPONSE", message="response has no choices", http_status=502)
        message = choices[0].get("message") or {}
        content = message.get("content")
        if content is None:
            raise ApiError(code="INVALID_RESPONSE", message="response message has no content", http_status=502)
        return ChatReply(
            id=data.get("id") or str(uuid4()),
            conversation_id=user_msg.conversation_id,
            text=content.strip(),
            parent_message_id=user_msg.id,
            role=message.get("role") or "assistant",
            detail=data,
        )
