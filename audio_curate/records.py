from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Iterable, Mapping, Protocol


class Recordable(Protocol):
    def to_record(self) -> Mapping[str, object]: ...


class JsonlRecordWriter:
    """Appends one JSON object per processed unit (JSON Lines)."""

    def __init__(self, output_path: Path, *, truncate: bool = True) -> None:
        self.output_path = output_path
        self._lock = Lock()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if truncate:
            output_path.write_text("", encoding="utf-8")

    def write(self, item: Recordable | Mapping[str, object]) -> None:
        payload = item if isinstance(item, Mapping) else item.to_record()
        line = json.dumps(payload, sort_keys=True, ensure_ascii=False)
        with self._lock:
            with self.output_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def write_all(self, items: Iterable[Recordable | Mapping[str, object]]) -> None:
        for item in items:
            self.write(item)


def read_records(path: Path) -> list[dict]:
    records: list[dict] = []
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records
