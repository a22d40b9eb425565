from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from threading import Event, Thread
from typing import Protocol, Sequence

from . import metrics
from .dns import RECORD_TTL, DnsProvider, resolve_zone
from .errors import (
    DiscoveryError,
    InvalidEndpointError,
    NoHealthyEndpointsError,
    RecordUpdateError,
    ZoneResolutionError,
)
from .events import log_event, utc_now
from .inventory import InventoryProvider, discover_addresses
from .runtime import CycleSummary, RecordOutcome, RuntimeState
from .settings import Settings


class EndpointChecker(Protocol):
    def check(self, address: str, record: str) -> bool: ...


class Reconciler:
    """Keeps each configured record pointed at the healthy running instances.

    One cycle: discover once, then reconcile every record concurrently.
    Cycles never overlap; a failure never leaves the record it belongs to.
    """

    def __init__(
        self,
        inventory: InventoryProvider,
        dns: DnsProvider,
        checker: EndpointChecker,
        *,
        tag_key: str,
        tag_value: str,
        records: Sequence[str],
        poll_interval_s: float = 30.0,
        max_workers: int = 32,
        runtime: RuntimeState | None = None,
    ):
        self.inventory = inventory
        self.dns = dns
        self.checker = checker
        self.tag_key = tag_key
        self.tag_value = tag_value
        self.records = tuple(records)
        self.poll_interval_s = float(poll_interval_s)
        self.max_workers = max(1, int(max_workers))
        self.runtime = runtime or RuntimeState()
        self._stop = Event()
        self._thr: Thread | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        inventory: InventoryProvider,
        dns: DnsProvider,
        checker: EndpointChecker,
        runtime: RuntimeState | None = None,
    ) -> "Reconciler":
        return cls(
            inventory,
            dns,
            checker,
            tag_key=settings.tag_key,
            tag_value=settings.tag_value,
            records=settings.records,
            poll_interval_s=settings.poll_interval_s,
            max_workers=settings.health_workers,
            runtime=runtime,
        )

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name="reconciler", daemon=True)
        self._thr.start()

    def stop(self, timeout: float | None = None) -> bool:
        """Stop scheduling cycles and wait up to ``timeout`` for the in-flight one.

        Returns False if a cycle was still running when the wait ran out.
        """
        self._stop.set()
        thr = self._thr
        if thr is None:
            return True
        thr.join(timeout)
        if thr.is_alive():
            log_event("WARN", "in-flight cycle did not finish within the grace period", grace_s=timeout)
            return False
        log_event("INFO", "Reconciler stopped")
        return True

    def _loop(self) -> None:
        log_event(
            "INFO",
            f"Reconciler started, will attempt to assign ip addrs every {self.poll_interval_s:g}s",
            records=",".join(self.records),
        )
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.run_cycle()
            except Exception as e:
                log_event("ERROR", f"Reconciliation cycle failed: {type(e).__name__}: {e}")
            # Ticks missed while a slow cycle ran are skipped, not queued.
            elapsed = time.monotonic() - started
            self._stop.wait(self.poll_interval_s - (elapsed % self.poll_interval_s))

    def run_cycle(self) -> CycleSummary:
        summary = CycleSummary()
        self.runtime.cycle_started()
        try:
            try:
                addresses = discover_addresses(self.inventory, self.tag_key, self.tag_value)
            except DiscoveryError as e:
                log_event("ERROR", f"error getting public ip addrs: {e}", provider="inventory")
                summary.aborted_reason = f"discovery failed: {e}"
                return summary

            if not addresses:
                log_event("WARN", "no ip addrs found, will not update", tag=f"{self.tag_key}:{self.tag_value}")
                summary.aborted_reason = "no ip addrs found"
                return summary

            summary.addresses = tuple(addresses)
            log_event("INFO", f"found {len(addresses)} ip addrs")

            metrics.reset_health_check_failures()
            with ThreadPoolExecutor(max_workers=max(1, len(self.records)), thread_name_prefix="record") as pool:
                summary.outcomes = list(pool.map(lambda r: self._reconcile_isolated(r, addresses), self.records))

            if summary.failed:
                log_event("WARN", f"{summary.updated} of {len(summary.outcomes)} records updated")
            else:
                log_event("INFO", "all records are up to date")
            return summary
        finally:
            summary.finished_at = utc_now()
            metrics.record_cycle(ok=not summary.aborted)
            self.runtime.cycle_finished(summary)

    def _reconcile_isolated(self, record: str, candidates: Sequence[str]) -> RecordOutcome:
        try:
            outcome = self.reconcile_record(record, candidates)
        except NoHealthyEndpointsError as e:
            log_event("ERROR", str(e), record=record)
            outcome = RecordOutcome(record=record, status="no_healthy_endpoints", detail=str(e))
        except ZoneResolutionError as e:
            log_event("ERROR", f"error getting route53 hosted zone: {e}", record=record, provider="dns")
            outcome = RecordOutcome(record=record, status="zone_error", detail=f"{type(e).__name__}: {e}")
        except RecordUpdateError as e:
            log_event("ERROR", f"error performing change on resource record: {e}", record=record, provider="dns")
            outcome = RecordOutcome(record=record, status="update_error", detail=str(e))
        except Exception as e:
            log_event("ERROR", f"record reconciliation failed: {type(e).__name__}: {e}", record=record)
            outcome = RecordOutcome(record=record, status="error", detail=f"{type(e).__name__}: {e}")
        metrics.record_update(record=record, result=outcome.status, healthy=len(outcome.endpoints) if outcome.ok else None)
        return outcome

    def reconcile_record(self, record: str, candidates: Sequence[str]) -> RecordOutcome:
        """Point ``record`` at the candidates that pass the health quorum.

        Raises NoHealthyEndpointsError before any DNS call when nothing is
        healthy, ZoneResolutionError, or RecordUpdateError.
        """
        healthy = self.healthy_endpoints(record, candidates)
        if not healthy:
            raise NoHealthyEndpointsError(record)

        zone_id = resolve_zone(self.dns, record)
        self.dns.upsert_record_set(zone_id, record, healthy, RECORD_TTL)

        log_event(
            "INFO",
            "successfully updated record with healthy ip addrs",
            record=record,
            zone=zone_id,
            ip_addrs=len(healthy),
        )
        return RecordOutcome(record=record, status="updated", endpoints=tuple(healthy), zone_id=zone_id)

    def healthy_endpoints(self, record: str, candidates: Sequence[str]) -> list[str]:
        if not candidates:
            return []
        workers = min(self.max_workers, len(candidates))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="check") as pool:
            verdicts = list(pool.map(lambda a: self._is_healthy(a, record), candidates))
        return [a for a, ok in zip(candidates, verdicts) if ok]

    def _is_healthy(self, address: str, record: str) -> bool:
        try:
            ok = self.checker.check(address, record)
        except InvalidEndpointError as e:
            log_event("ERROR", str(e), endpoint=address, record=record)
            ok = False
        if not ok:
            metrics.record_health_check_failure()
            log_event("ERROR", "failed all health checks, will not add this record", endpoint=address, record=record)
        return ok
