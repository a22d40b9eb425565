from __future__ import annotations

import ipaddress
import time
from concurrent.futures import ThreadPoolExecutor

import httpx

from . import metrics
from .errors import InvalidEndpointError
from .events import log_event

# Both schemes must be healthy for an endpoint to be eligible.
SCHEMES = ("http", "https")

# Successful responses required per scheme.
DEFAULT_ATTEMPTS = 3

DEFAULT_TIMEOUT_S = 10.0
DEFAULT_MAX_WORKERS = 32


def build_http_client(timeout_s: float = DEFAULT_TIMEOUT_S, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Client shared by every probe of the process.

    Certificate verification is disabled: probes dial the endpoint address,
    so no certificate the peer presents can match it.
    """
    return httpx.Client(timeout=timeout_s, verify=False, follow_redirects=False, transport=transport)


def probe_url(scheme: str, address: str) -> str:
    try:
        ip = ipaddress.ip_address(str(address).strip())
    except ValueError as e:
        raise InvalidEndpointError(f"error parsing host url: {address!r}") from e
    host = f"[{ip}]" if ip.version == 6 else str(ip)
    return f"{scheme}://{host}/"


def probe(client: httpx.Client, url: str, host: str) -> tuple[bool, str, float | None]:
    """GET ``url`` with the Host header forced to ``host``.

    Healthy means exactly HTTP 200.
    Returns (is_healthy, message, latency_ms).
    """
    start = time.time()
    try:
        resp = client.get(url, headers={"Host": host})
        latency_ms = round((time.time() - start) * 1000.0, 2)
        if resp.status_code != 200:
            return False, f"invalid http response code: {resp.status_code}", latency_ms
        return True, "OK", latency_ms
    except httpx.TimeoutException as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, f"Timeout: {type(e).__name__}", latency_ms
    except Exception as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, f"Error: {type(e).__name__}: {e}", latency_ms


class HealthChecker:
    """Strict quorum over ``attempts`` probes per scheme.

    Every trial across both schemes must pass; one failure fails the
    endpoint for that record.
    """

    def __init__(
        self,
        client: httpx.Client,
        attempts: int = DEFAULT_ATTEMPTS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        schemes: tuple[str, ...] = SCHEMES,
    ):
        self.client = client
        self.attempts = max(1, int(attempts))
        self.max_workers = max(1, int(max_workers))
        self.schemes = tuple(schemes)

    @property
    def required(self) -> int:
        return self.attempts * len(self.schemes)

    def check(self, address: str, record: str) -> bool:
        # URL errors are fatal for this call and raised before any trial runs.
        urls = {scheme: probe_url(scheme, address) for scheme in self.schemes}
        trials = [(scheme, urls[scheme]) for scheme in self.schemes for _ in range(self.attempts)]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(trials)), thread_name_prefix="probe") as pool:
            results = list(pool.map(lambda t: self._trial(t[0], t[1], address, record), trials))

        success = sum(1 for ok in results if ok)
        if success != self.required:
            log_event(
                "WARN",
                f"failed {self.required - success} out of {self.required} health checks",
                endpoint=address,
                record=record,
            )
            return False
        return True

    def _trial(self, scheme: str, url: str, address: str, record: str) -> bool:
        ok, msg, latency_ms = probe(self.client, url, record)
        metrics.record_probe(scheme=scheme, ok=ok)
        if not ok:
            log_event("ERROR", msg, scheme=scheme, endpoint=address, record=record, latency_ms=latency_ms)
        return ok
