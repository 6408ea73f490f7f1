"""三级观测通道：info / warning / set_failed。

ChatSession 不直接依赖 CI 平台的输出约定，而是依赖 Reporter 协议；
默认实现写入包日志，并记住是否出现过致命前置条件失败，
由外层流程决定是否终止进程。
"""

import logging
from typing import Any, Optional, Protocol

from review_core.infrastructure.logging.logger import logger as default_logger


class Reporter(Protocol):
    def info(self, message: str, **fields: Any) -> None:
        ...

    def warning(self, message: str, exc_info: Any = None, **fields: Any) -> None:
        ...

    def set_failed(self, message: str, **fields: Any) -> None:
        ...


class LogReporter:
    """基于 logging 的 Reporter 实现。"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or default_logger
        self.failed = False
        self.failure_message: Optional[str] = None

    def info(self, message: str, **fields: Any) -> None:
        self._logger.info(message, extra={"extra": fields})

    def debug(self, message: str, **fields: Any) -> None:
        self._logger.debug(message, extra={"extra": fields})

    def warning(self, message: str, exc_info: Any = None, **fields: Any) -> None:
        self._logger.warning(message, exc_info=exc_info, extra={"extra": fields})

    def set_failed(self, message: str, **fields: Any) -> None:
        self.failed = True
        self.failure_message = message
        self._logger.error(message, extra={"extra": fields})
