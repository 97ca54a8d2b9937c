from __future__ import annotations

import datetime as _dt
import json
from pathlib import Path
from typing import Any


def now_utc_iso() -> str:
    return _dt.datetime.now(tz=_dt.timezone.utc).isoformat().replace("+00:00", "Z")


def write_sidecar(out_path: Path, payload: dict[str, Any]) -> Path:
    sidecar = out_path.with_suffix(out_path.suffix + ".json")
    sidecar.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return sidecar


def append_jsonl(log_path: Path, payload: dict[str, Any]) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(payload, ensure_ascii=False) + "\n")


class MintJournal:
    """Append-only JSONL record of every mint session transition."""

    def __init__(self, log_path: Path):
        self.log_path = Path(log_path)

    def record(self, event: str, **fields: Any) -> None:
        payload = {"timestamp": now_utc_iso(), "event": event}
        payload.update({k: v for k, v in fields.items() if v is not None})
        append_jsonl(self.log_path, payload)

    def entries(self) -> list[dict[str, Any]]:
        if not self.log_path.exists():
            return []
        lines = self.log_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]
