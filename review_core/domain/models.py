"""会话续接与结果数据模型。

本模块定义了 ChatSession 与底层传输层之间共享的标准数据结构：

- ConversationRef: 调用方持有的会话标识（parent_message_id / conversation_id）。
- ChatOutcome: chat() 的返回值，可以像二元组一样解包。
- SendOptions: 单次发送的参数（超时、父消息 ID）。
- ChatReply: 传输层解析后的单条助手回复。
- StoredMessage: 传输层消息仓库中保存的一条历史消息。
- SendResult: 重试包装器返回的成功/失败标记结果。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Literal, Optional


# 与 chat/completions 接口的 role 字段对应
Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ConversationRef:
    """调用方持有的会话续接标识。

    两个字段都为空表示开启新会话；ChatSession 自身不保存它，
    每轮对话结束后由调用方用新的 ConversationRef 替换旧值。
    """

    parent_message_id: Optional[str] = None
    conversation_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.parent_message_id is None and self.conversation_id is None

    def to_dict(self) -> Dict[str, str]:
        data: Dict[str, str] = {}
        if self.parent_message_id is not None:
            data["parentMessageId"] = self.parent_message_id
        if self.conversation_id is not None:
            data["conversationId"] = self.conversation_id
        return data


@dataclass(frozen=True)
class ChatOutcome:
    """一次 chat 调用的归一化结果。

    失败路径上 text 为空串、ref 为空的 ConversationRef。
    支持 `text, ref = session.chat(...)` 形式的解包。
    """

    text: str = ""
    ref: ConversationRef = field(default_factory=ConversationRef)

    @classmethod
    def empty(cls) -> "ChatOutcome":
        return cls()

    def __iter__(self) -> Iterator[Any]:
        yield self.text
        yield self.ref


@dataclass(frozen=True)
class SendOptions:
    """传给底层 send_message 的单次调用参数。"""

    timeout_ms: int
    parent_message_id: Optional[str] = None


@dataclass
class ChatReply:
    """传输层返回的一条助手回复。

    - id: Provider 返回的消息 ID（下一轮的 parent_message_id）。
    - conversation_id: 所属会话 ID。
    - parent_message_id: 本条回复对应的用户消息 ID。
    - detail: 原始响应 JSON，用于调试日志。
    """

    id: str
    conversation_id: str
    text: str
    parent_message_id: Optional[str] = None
    role: Role = "assistant"
    detail: Optional[dict] = None

    def to_log_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "parentMessageId": self.parent_message_id,
            "role": self.role,
            "text": self.text,
        }


@dataclass
class StoredMessage:
    """消息仓库里的一条记录，用于沿 parent 链回溯历史。"""

    id: str
    conversation_id: str
    role: Role
    text: str
    parent_message_id: Optional[str] = None


@dataclass
class SendResult:
    """重试包装器的标记结果：要么带 reply，要么带 error。"""

    reply: Optional[ChatReply] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.reply is not None

    @classmethod
    def success(cls, reply: Optional[ChatReply], attempts: int) -> "SendResult":
        return cls(reply=reply, attempts=attempts)

    @classmethod
    def failure(cls, error: BaseException, attempts: int) -> "SendResult":
        return cls(error=error, attempts=attempts)
