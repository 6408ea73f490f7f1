"""单次机器人运行的会话配置。"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from review_core.providers.registry import TokenLimits, get_token_limits


@dataclass(frozen=True)
class SessionConfig:
    """ChatSession 的不可变配置，每次机器人运行构造一次。

    Attributes:
        system_message: 系统提示词前导。
        model: 目标模型 ID。
        token_limits: 模型总 token 与回复 token 预算。
        temperature: 生成温度。
        timeout_ms: 单次调用超时（毫秒）。
        retries: 首次失败后的额外重试次数。
        api_base_url: chat/completions 的基础 URL。
        debug: 是否输出调试日志。
        language: 回复语言的 ISO 代码。
        retry_backoff_seconds: 指数退避的基础等待秒数，0 表示不等待。
    """

    system_message: str
    model: str
    token_limits: TokenLimits = field(default_factory=lambda: get_token_limits(""))
    temperature: float = 0.0
    timeout_ms: int = 120000
    retries: int = 5
    api_base_url: str = "https://api.openai.com/v1"
    debug: bool = False
    language: str = "en-US"
    retry_backoff_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    @classmethod
    def from_settings(cls, cfg, model: Optional[str] = None) -> "SessionConfig":
        """根据 Settings 构造；model 为空时使用重量级模型。"""

        model_name = model or cfg.openai_heavy_model
        return cls(
            system_message=cfg.system_message,
            model=model_name,
            token_limits=get_token_limits(model_name),
            temperature=cfg.openai_model_temperature,
            timeout_ms=cfg.openai_timeout_ms,
            retries=cfg.openai_retries,
            api_base_url=cfg.api_base_url,
            debug=cfg.debug,
            language=cfg.language,
            retry_backoff_seconds=cfg.retry_backoff_seconds,
        )

    def build_system_message(self, today: Optional[date] = None) -> str:
        """拼装最终发给模型的 system 消息。"""

        current_date = (today or date.today()).isoformat()
        return (
            f"{self.system_message}\n"
            f"Knowledge cutoff: {self.token_limits.knowledge_cut_off}\n"
            f"Current date: {current_date}\n\n"
            f"IMPORTANT: Entire response must be in the language with ISO code: {self.language}\n"
        )
