"""提示词占位符渲染。

模板里的占位符形如 `$name`。render 用一次正则扫描完成替换：

- 标识符按最长匹配截取，`$file` 不会误伤 `$file_diff`；
- 未登记（或值为 None）的占位符原样保留，便于分阶段拼装 Inputs；
- 替换进去的值不会被再次扫描，diff 里出现的 `$title` 等文本保持原样。
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional


PLACEHOLDER_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


def render(template: str, values: Mapping[str, Optional[str]]) -> str:
    def _substitute(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_RE.sub(_substitute, template)


@dataclass
class Inputs:
    """调用方逐步填充的占位符取值。

    字段名即占位符名（`$file_diff` 对应 file_diff）。为 None 的字段视为
    尚未登记，渲染时保留原占位符；空串则会被正常替换为空。
    """

    system_message: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    raw_summary: Optional[str] = None
    short_summary: Optional[str] = None
    filename: Optional[str] = None
    file_content: Optional[str] = None
    file_diff: Optional[str] = None
    patches: Optional[str] = None
    diff: Optional[str] = None
    comment_chain: Optional[str] = None
    comment: Optional[str] = None

    def clone(self) -> "Inputs":
        """复制一份，用于按文件并发渲染时互不干扰。"""

        return replace(self)

    def as_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def render(self, template: str) -> str:
        if not template:
            return ""
        return render(template, self.as_dict())
