"""Local persistence of the conversation handle.

The store is a small JSON document holding the conversation ID under a
fixed key and, while a run is live, the active run ID so polling can
resume after a restart.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

CONVERSATION_KEY = "threadId"
RUN_KEY = "runId"


@dataclass(frozen=True)
class StoredConversation:
    conversation_id: str
    run_id: str | None = None


class ConversationStore:
    """JSON-file store for the active conversation."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredConversation | None:
        """Read the stored conversation.

        Returns:
            The stored handle, or None when nothing usable is stored.
        """
        data = self._read()
        conversation_id = data.get(CONVERSATION_KEY)
        if not isinstance(conversation_id, str) or not conversation_id:
            return None
        run_id = data.get(RUN_KEY)
        return StoredConversation(
            conversation_id=conversation_id,
            run_id=run_id if isinstance(run_id, str) and run_id else None,
        )

    def save_conversation(self, conversation_id: str) -> None:
        self._write({CONVERSATION_KEY: conversation_id})

    def save_run(self, run_id: str | None) -> None:
        """Record or forget the active run, keeping the stored conversation."""
        data = self._read()
        if run_id is None:
            data.pop(RUN_KEY, None)
        else:
            data[RUN_KEY] = run_id
        self._write(data)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

    def _read(self) -> dict:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("conversation_store_unreadable", path=str(self._path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        tmp_path.replace(self._path)
