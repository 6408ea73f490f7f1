"""传输层的消息仓库。

ChatCompletionsAPI 通过 parent_message_id 回溯历史消息来续接会话，
这里提供两种实现：

- InMemoryMessageStore：进程内字典，单次机器人运行足够。
- JsonlMessageStore：追加写入 messages.jsonl，跨进程保留会话。
"""

import json
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Optional, Protocol

from review_core.config.settings import settings
from review_core.domain.exceptions import BusinessError
from review_core.domain.models import StoredMessage


class MessageStore(Protocol):
    def get(self, message_id: str) -> Optional[StoredMessage]:
        ...

    def put(self, message: StoredMessage) -> None:
        ...


class InMemoryMessageStore:
    def __init__(self):
        self._messages: Dict[str, StoredMessage] = {}
        self._lock = threading.Lock()

    def get(self, message_id: str) -> Optional[StoredMessage]:
        with self._lock:
            return self._messages.get(message_id)

    def put(self, message: StoredMessage) -> None:
        with self._lock:
            self._messages[message.id] = message

    def __len__(self) -> int:
        return len(self._messages)


class JsonlMessageStore:
    """追加写入的 JSONL 消息仓库，启动时把已有记录读入内存索引。"""

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._path = self._root / "messages.jsonl"
        self._lock = threading.Lock()
        self._index: Dict[str, StoredMessage] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, message_id: str) -> Optional[StoredMessage]:
        with self._lock:
            return self._index.get(message_id)

    def put(self, message: StoredMessage) -> None:
        line = json.dumps(asdict(message), ensure_ascii=False)
        with self._lock:
            try:
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))
            self._index[message.id] = message

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))
        for line in lines:
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                msg = StoredMessage(
                    id=data["id"],
                    conversation_id=data["conversation_id"],
                    role=data["role"],
                    text=data.get("text") or "",
                    parent_message_id=data.get("parent_message_id"),
                )
            except (json.JSONDecodeError, KeyError, TypeError):
                # 截断的最后一行等损坏记录直接跳过
                continue
            self._index[msg.id] = msg


def create_message_store(kind: Optional[str] = None) -> MessageStore:
    """根据配置创建消息仓库，默认取 settings.message_store。"""

    store_kind = (kind or settings.message_store).lower()
    if store_kind == "jsonl":
        return JsonlMessageStore()
    return InMemoryMessageStore()
