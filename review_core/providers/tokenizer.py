"""基于 tiktoken 的 token 计数，用于历史消息的上下文预算。"""

from functools import lru_cache
from typing import Callable

import tiktoken


TokenCounter = Callable[[str], int]


@lru_cache(maxsize=1)
def _encoding() -> "tiktoken.Encoding":
    # cl100k_base 覆盖 gpt-4 / gpt-3.5-turbo 系列
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    if not text:
        return 0
    return len(_encoding().encode(text, disallowed_special=()))
