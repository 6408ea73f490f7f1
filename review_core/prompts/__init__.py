"""提示词目录与占位符渲染。"""

from review_core.prompts.catalog import (
    COMMENT,
    REVIEW_FILE_DIFF,
    SUMMARIZE_CHANGESETS,
    SUMMARIZE_FILE_DIFF,
    SUMMARIZE_PREFIX,
    SUMMARIZE_SHORT,
    TRIAGE_FILE_DIFF,
    Prompts,
)
from review_core.prompts.inputs import Inputs, render

__all__ = [
    "COMMENT",
    "REVIEW_FILE_DIFF",
    "SUMMARIZE_CHANGESETS",
    "SUMMARIZE_FILE_DIFF",
    "SUMMARIZE_PREFIX",
    "SUMMARIZE_SHORT",
    "TRIAGE_FILE_DIFF",
    "Inputs",
    "Prompts",
    "render",
]
