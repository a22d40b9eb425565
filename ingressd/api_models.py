from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RecordOutcomeModel(BaseModel):
    record: str
    status: str = Field(..., description="updated|no_healthy_endpoints|zone_error|update_error|error")
    endpoints: list[str] = Field(default_factory=list, description="Healthy addresses written to the record")
    zone_id: str | None = None
    detail: str = ""


class CycleModel(BaseModel):
    started_at: str
    finished_at: str | None = None
    addresses: list[str] = Field(default_factory=list, description="Running addresses discovered this cycle")
    outcomes: list[RecordOutcomeModel] = Field(default_factory=list)
    aborted_reason: str | None = None
    updated: int = 0
    failed: int = 0


class StatusResponse(BaseModel):
    started_at: str
    cycles: int
    running: bool
    records: list[str]
    poll_interval_s: float | None = None
    last_cycle: CycleModel | None = None


class EventModel(BaseModel):
    ts: str
    level: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
