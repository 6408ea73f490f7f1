"""Provider 与模型配置。

本模块集中维护两类静态信息：

- TokenLimits：每个模型的上下文窗口与回复预算，决定历史消息能回溯多远。
- ProviderConfig：目标 Provider 的认证约定（头名称、需要剔除的头、api-version）。

上层只关心模型名，具体预算由这里查表，便于后续升级或切换模型。"""

from dataclasses import dataclass, field
from typing import Mapping, Tuple


KNOWLEDGE_CUT_OFF = "2021-09-01"


@dataclass(frozen=True)
class TokenLimits:
    """单个模型的 token 预算。"""

    max_tokens: int
    response_tokens: int
    knowledge_cut_off: str = KNOWLEDGE_CUT_OFF

    @property
    def request_tokens(self) -> int:
        # 预留 100 个 token 给消息格式开销
        return self.max_tokens - self.response_tokens - 100

    def __str__(self) -> str:
        return (
            f"max_tokens={self.max_tokens}, request_tokens={self.request_tokens}, "
            f"response_tokens={self.response_tokens}"
        )


DEFAULT_TOKEN_LIMITS = TokenLimits(max_tokens=4000, response_tokens=1000)

MODEL_TOKEN_LIMITS: Mapping[str, TokenLimits] = {
    "gpt-4-32k": TokenLimits(max_tokens=32600, response_tokens=4000),
    "gpt-3.5-turbo-16k": TokenLimits(max_tokens=16300, response_tokens=3000),
    "gpt-4": TokenLimits(max_tokens=8000, response_tokens=2000),
}


def get_token_limits(model: str) -> TokenLimits:
    """根据模型名获取 TokenLimits，未知模型使用默认预算。"""

    return MODEL_TOKEN_LIMITS.get(model, DEFAULT_TOKEN_LIMITS)


@dataclass(frozen=True)
class ProviderConfig:
    """目标 Provider 的认证约定。"""

    name: str
    api_key_header: str
    api_version: str
    stripped_headers: Tuple[str, ...] = field(default_factory=tuple)


# Azure OpenAI：api-key 头 + api-version 查询参数，带 Authorization 会被拒绝
AZURE_CONFIG = ProviderConfig(
    name="azure",
    api_key_header="api-key",
    api_version="2023-03-15-preview",
    stripped_headers=("Authorization", "OpenAI-Organization"),
)
