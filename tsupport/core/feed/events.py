from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# Columns a subscriber may filter on, per table. Each gets its own channel.
FILTER_COLUMNS: dict[str, tuple[str, ...]] = {
    "messages": ("chat_id",),
    "chats": ("id",),
}


class ChangeKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    table: str
    kind: ChangeKind
    record: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({"table": self.table, "kind": str(self.kind), "record": self.record}, default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> ChangeEvent:
        """Parse a published event. Raises ``ValueError`` on anything malformed."""
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise ValueError(f"undecodable change event: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("change event is not an object")
        record = data.get("record")
        if not isinstance(record, dict):
            raise ValueError("change event has no record")
        return cls(table=str(data.get("table", "")), kind=ChangeKind(data.get("kind")), record=record)


def table_channel(table: str) -> str:
    return f"feed:{table}"


def filter_channel(table: str, column: str, value: Any) -> str:
    if column not in FILTER_COLUMNS.get(table, ()):
        raise ValueError(f"{table!r} cannot be filtered on {column!r}")
    return f"feed:{table}:{column}={value}"


def channels_for(table: str, record: dict[str, Any]) -> list[str]:
    """Every channel an event about *record* must reach."""
    channels = [table_channel(table)]
    for column in FILTER_COLUMNS.get(table, ()):
        if record.get(column) is not None:
            channels.append(filter_channel(table, column, record[column]))
    return channels
