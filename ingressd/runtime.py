from __future__ import annotations

from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any

from .events import utc_now


@dataclass(frozen=True)
class RecordOutcome:
    record: str
    status: str  # updated|no_healthy_endpoints|zone_error|update_error|error
    endpoints: tuple[str, ...] = ()
    zone_id: str | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "updated"


@dataclass
class CycleSummary:
    started_at: str = field(default_factory=utc_now)
    finished_at: str | None = None
    addresses: tuple[str, ...] = ()
    outcomes: list[RecordOutcome] = field(default_factory=list)
    aborted_reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self.aborted_reason is not None

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["updated"] = self.updated
        data["failed"] = self.failed
        return data


class RuntimeState:
    """In-memory view of the reconciler for the HTTP surface. Never read by a cycle."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.started_at = utc_now()
        self.cycles = 0
        self.running = False
        self.last_cycle: CycleSummary | None = None

    def cycle_started(self) -> None:
        with self.lock:
            self.running = True

    def cycle_finished(self, summary: CycleSummary) -> None:
        with self.lock:
            self.running = False
            self.cycles += 1
            self.last_cycle = summary

    def snapshot(self) -> dict[str, Any]:
        with self.lock:
            return {
                "started_at": self.started_at,
                "cycles": self.cycles,
                "running": self.running,
                "last_cycle": self.last_cycle.to_dict() if self.last_cycle else None,
            }
