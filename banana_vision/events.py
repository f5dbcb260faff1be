"""JSONL event log for a banana-vision session."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from .utils import now_utc_iso


def _jsonable(value: Any) -> Any:
    # Image payloads are logged by size only.
    if isinstance(value, (bytes, bytearray)):
        return {"bytes": len(value)}
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return str(value)


@dataclass
class EventWriter:
    """Appends one event per line, numbered by ``seq`` within the session."""

    path: Path
    session_id: str
    _seq: int = field(default=0, repr=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, init=False)

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        with self._lock:
            self._seq += 1
            event = {
                "type": event_type,
                "session_id": self.session_id,
                "seq": self._seq,
                "ts": now_utc_iso(),
            }
            event.update(payload)
            line = f"{json.dumps(event, default=_jsonable)}\n"
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
        return event
