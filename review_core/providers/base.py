"""传输层抽象接口。

ChatSession 不直接依赖 HTTP 细节，而是依赖此协议：

- send_message(text, options): 发送一条用户消息，返回助手回复 ChatReply。
- close(): 释放底层连接。

失败时实现者应抛出 NetworkError / RateLimitError / ApiError，
由 ChatSession 的重试包装器统一处理。
"""

from typing import Protocol

from review_core.domain.models import ChatReply, SendOptions


class ChatTransport(Protocol):
    name: str

    def send_message(self, text: str, options: SendOptions) -> ChatReply:
        ...

    def close(self) -> None:
        ...
