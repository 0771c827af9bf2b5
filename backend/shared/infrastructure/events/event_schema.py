"""
Wire format of the orders feed.

A notification names the orders a committed write touched. It carries no
authoritative state: subscribers re-read the live set when one arrives.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


@dataclass
class Event:
    """
    Change notification for the live order set.

    order_ids: orders touched by the write (empty for none)
    table_id:  table key the orders belong to, if a single one
    entity:    event-specific details (new status, item index, history ids)
    actor:     who issued the command, e.g. {"kind": "STAFF"}
    request_id: REST request that caused the write, for log correlation
    """

    type: str
    order_ids: list[str] = field(default_factory=list)
    table_id: str | None = None
    entity: dict[str, Any] = field(default_factory=dict)
    actor: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None
    ts: str | None = None
    v: int = 1

    def __post_init__(self) -> None:
        _require(isinstance(self.type, str) and bool(self.type), "Event type must be a non-empty string")
        _require(
            isinstance(self.order_ids, list)
            and all(isinstance(order_id, str) and order_id for order_id in self.order_ids),
            "Event order_ids must be a list of non-empty strings",
        )
        _require(
            self.table_id is None or (isinstance(self.table_id, str) and bool(self.table_id)),
            "Event table_id must be a non-empty string or None",
        )
        _require(isinstance(self.entity or {}, dict), "Event entity must be a dict")
        _require(isinstance(self.actor or {}, dict), "Event actor must be a dict")

    def to_json(self) -> str:
        """Serialize, stamping ts with the current UTC time if unset."""
        data = asdict(self)
        data["entity"] = data["entity"] or {}
        data["actor"] = data["actor"] or {}
        data["ts"] = data["ts"] or datetime.now(timezone.utc).isoformat()
        return json.dumps(data, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "Event":
        data = json.loads(json_str)
        return cls(**data)
