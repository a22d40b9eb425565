from __future__ import annotations

import uvicorn

from .api import create_app
from .dns import Route53Dns
from .errors import ConfigError
from .events import configure_logging, log_event
from .health import HealthChecker, build_http_client
from .inventory import Ec2Inventory
from .reconciler import Reconciler
from .settings import Settings


def build_app(settings: Settings):
    client = build_http_client(settings.health_timeout_s)
    checker = HealthChecker(client, attempts=settings.health_attempts, max_workers=settings.health_workers)
    reconciler = Reconciler.from_settings(
        settings,
        inventory=Ec2Inventory.for_region(settings.region),
        dns=Route53Dns.create(settings.region),
        checker=checker,
    )
    return create_app(reconciler, shutdown_grace_s=settings.shutdown_grace_s, http_client=client)


def main() -> int:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging("INFO")
        log_event("CRITICAL", f"invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)
    log_event(
        "INFO",
        "service starting",
        tag=f"{settings.tag_key}:{settings.tag_value}",
        region=settings.region,
        records=",".join(settings.records),
        port=settings.port,
    )

    app = build_app(settings)
    # uvicorn handles SIGINT/SIGTERM; the app lifespan drains the reconciler.
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
        timeout_graceful_shutdown=int(settings.shutdown_grace_s) + 1,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
