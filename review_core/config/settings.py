"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SYSTEM_MESSAGE = """You are a language model acting as a highly experienced software engineer.
Your purpose is to provide a thorough review of the code hunks and suggest
code snippets to improve key areas such as:
  - Logic
  - Security
  - Performance
  - Data races
  - Consistency
  - Error handling
  - Maintainability
  - Modularity
  - Complexity
  - Optimization
  - Best practices: DRY, SOLID, KISS

Do not comment on minor code style issues, missing comments/documentation.
Identify and resolve significant concerns to improve overall code quality
while deliberately disregarding minor issues.
"""

DEFAULT_SUMMARIZE = """Provide your final response in markdown with the following content:

- **Walkthrough**: A high-level summary of the overall change instead of
  specific files within 80 words.
- **Changes**: A markdown table of files and their summaries. Group files
  with similar changes together into a single row to save space.

Avoid additional commentary as this summary will be added as a comment on the
GitHub pull request. Use the titles "Walkthrough" and "Changes" and they must be H2.
"""

DEFAULT_SUMMARIZE_RELEASE_NOTES = """Craft concise release notes for the pull request.
Focus on the purpose and user impact, categorizing changes as "New Feature", "Bug Fix",
"Documentation", "Refactor", "Style", "Test", "Chore", or "Revert". Provide a bullet-point list,
e.g., "- New Feature: Added search functionality to the UI". Limit your response to 50-100 words
and emphasize features visible to the end-user while omitting code-level details.
"""


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("REVIEW_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """机器人运行配置（使用 Pydantic）。"""

    # ---- 凭证与端点 ----
    azure_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("azure_api_key", "AZURE_API_KEY", "REVIEW_AZURE_API_KEY"),
        description="Azure OpenAI API 密钥",
    )
    api_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="chat/completions 所在的基础 URL（Azure 部署地址）",
    )
    api_version: str = Field(
        default="2023-03-15-preview",
        description="追加到每个请求上的 api-version 查询参数",
    )

    # ---- 模型相关 ----
    openai_light_model: str = Field(default="gpt-3.5-turbo", description="摘要等轻量任务使用的模型")
    openai_heavy_model: str = Field(default="gpt-4", description="代码审查使用的模型")
    openai_model_temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="生成温度")
    openai_retries: int = Field(default=5, ge=0, description="失败后的额外重试次数")
    openai_timeout_ms: int = Field(default=120000, ge=1000, description="单次调用超时（毫秒）")
    retry_backoff_seconds: float = Field(default=1.0, ge=0.0, description="指数退避的基础等待秒数")

    # ---- 提示词 ----
    system_message: str = Field(default=DEFAULT_SYSTEM_MESSAGE, description="系统提示词前导")
    summarize: str = Field(default=DEFAULT_SUMMARIZE, description="最终摘要的提示词主体")
    summarize_release_notes: str = Field(
        default=DEFAULT_SUMMARIZE_RELEASE_NOTES,
        description="发布说明的提示词主体",
    )
    language: str = Field(default="en-US", description="回复语言的 ISO 代码")
    review_simple_changes: bool = Field(default=False, description="为 False 时摘要附带 triage 指令")

    # ---- 运行时 ----
    debug: bool = Field(default=False, description="是否输出调试日志")
    message_store: Literal["memory", "jsonl"] = Field(default="memory", description="会话历史存储方式")
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_prefix="REVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("azure_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
