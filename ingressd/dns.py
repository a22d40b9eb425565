from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import AmbiguousZoneError, RecordUpdateError, ZoneListingError, ZoneNotFoundError

RECORD_TTL = 60


@dataclass(frozen=True)
class Zone:
    id: str
    name: str


class DnsProvider(Protocol):
    def list_zones(self) -> list[Zone]: ...

    def upsert_record_set(self, zone_id: str, name: str, values: list[str], ttl: int = RECORD_TTL) -> None: ...


def _strip_dot(name: str) -> str:
    return name[:-1] if name.endswith(".") else name


def _matches(record: str, suffix: str) -> bool:
    return bool(suffix) and (record == suffix or record.endswith("." + suffix))


def resolve_zone(dns: DnsProvider, record: str) -> str:
    """Return the id of the most specific zone owning ``record``.

    The zone listing is fetched on every call. A record belongs to the zone
    with the longest name it ends with (on a label boundary); if several zones
    share that longest name the configuration is ambiguous and nothing is
    picked.
    """
    try:
        zones = dns.list_zones()
    except ZoneListingError:
        raise
    except Exception as e:
        raise ZoneListingError(f"error listing hosted zones: {e}") from e

    host = _strip_dot(record.strip()).lower()
    best_len = 0
    best: list[Zone] = []
    for zone in zones:
        suffix = _strip_dot(zone.name).lower()
        if not _matches(host, suffix):
            continue
        if len(suffix) > best_len:
            best_len = len(suffix)
            best = [zone]
        elif len(suffix) == best_len:
            best.append(zone)

    if not best:
        raise ZoneNotFoundError(record)
    if len(best) > 1:
        raise AmbiguousZoneError(record, sorted(z.id for z in best))
    return best[0].id


def build_changes(name: str, values: Iterable[str], ttl: int = RECORD_TTL) -> list[dict[str, Any]]:
    """UPSERT changes for ``values``: one A set for IPv4, one AAAA set for IPv6.

    Only families present in ``values`` get a change. The set of an absent
    family is left as it was in the zone; EC2 discovery only yields IPv4
    public addresses, so in practice only the A set is written.
    """
    by_type: dict[str, list[ipaddress.IPv4Address | ipaddress.IPv6Address]] = {}
    for value in values:
        ip = ipaddress.ip_address(value)
        rtype = "A" if ip.version == 4 else "AAAA"
        if ip not in by_type.setdefault(rtype, []):
            by_type[rtype].append(ip)
    if not by_type:
        raise ValueError("no ips provided")

    changes: list[dict[str, Any]] = []
    for rtype in ("A", "AAAA"):
        ips = by_type.get(rtype)
        if not ips:
            continue
        changes.append(
            {
                "Action": "UPSERT",
                "ResourceRecordSet": {
                    "Name": name,
                    "Type": rtype,
                    "TTL": ttl,
                    "ResourceRecords": [{"Value": str(ip)} for ip in sorted(ips)],
                },
            }
        )
    return changes


class Route53Dns:
    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def create(cls, region: str | None = None) -> "Route53Dns":
        # Route 53 is global; the region only selects the partition endpoint.
        return cls(boto3.client("route53", region_name=region))

    def list_zones(self) -> list[Zone]:
        params: dict[str, Any] = {}
        zones: list[Zone] = []
        try:
            while True:
                res = self.client.list_hosted_zones(**params)
                for z in res.get("HostedZones", []):
                    zones.append(Zone(id=z["Id"], name=z["Name"]))
                if not res.get("IsTruncated"):
                    break
                params["Marker"] = res["NextMarker"]
        except (BotoCoreError, ClientError) as e:
            raise ZoneListingError(f"error listing hosted zones: {e}") from e
        return zones

    def upsert_record_set(self, zone_id: str, name: str, values: list[str], ttl: int = RECORD_TTL) -> None:
        # An empty record set would wipe the record; refuse before calling out.
        if not values:
            raise ValueError("no ips provided")
        changes = build_changes(name, values, ttl)
        try:
            self.client.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch={"Changes": changes},
            )
        except (BotoCoreError, ClientError) as e:
            raise RecordUpdateError(f"error performing change to record set: {e}") from e
