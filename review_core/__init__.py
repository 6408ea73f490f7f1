"""Review Core 顶层包。

该包提供代码审查机器人的对话补全核心，包括配置加载、
会话续接、Azure 请求改写、重试策略与提示词模板渲染。
"""

from review_core.agents.chat_session import ChatSession, create_session
from review_core.config.session import SessionConfig
from review_core.domain.models import ChatOutcome, ConversationRef
from review_core.prompts import Inputs, Prompts, render

__all__ = [
    "ChatSession",
    "create_session",
    "SessionConfig",
    "ChatOutcome",
    "ConversationRef",
    "Inputs",
    "Prompts",
    "render",
]
