from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import DiscoveryError
from .events import log_event

STATE_RUNNING = "running"


@dataclass(frozen=True)
class Instance:
    id: str
    public_address: str | None
    state: str


class InventoryProvider(Protocol):
    def list_instances(self, tag_key: str, tag_value: str) -> list[Instance]: ...


class Ec2Inventory:
    """Lists EC2 instances carrying a given tag in one region."""

    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def for_region(cls, region: str) -> "Ec2Inventory":
        return cls(boto3.client("ec2", region_name=region))

    def list_instances(self, tag_key: str, tag_value: str) -> list[Instance]:
        params: dict[str, Any] = {"Filters": [{"Name": f"tag:{tag_key}", "Values": [tag_value]}]}
        instances: list[Instance] = []
        try:
            while True:
                res = self.client.describe_instances(**params)
                for reservation in res.get("Reservations", []):
                    for inst in reservation.get("Instances", []):
                        instances.append(
                            Instance(
                                id=inst.get("InstanceId", ""),
                                public_address=inst.get("PublicIpAddress"),
                                state=(inst.get("State") or {}).get("Name", ""),
                            )
                        )
                token = res.get("NextToken")
                if not token:
                    break
                params["NextToken"] = token
        except (BotoCoreError, ClientError) as e:
            raise DiscoveryError(f"error describing instances: {e}") from e
        return instances


def discover_addresses(inventory: InventoryProvider, tag_key: str, tag_value: str) -> list[str]:
    """Public addresses of running instances with the tag, deduplicated in listing order.

    Raises DiscoveryError if the inventory cannot be queried.
    """
    addresses: list[str] = []
    for inst in inventory.list_instances(tag_key, tag_value):
        if inst.state != STATE_RUNNING:
            log_event("INFO", "skipping instance as state != running", instance_id=inst.id, state=inst.state)
            continue
        if not inst.public_address:
            log_event("INFO", "skipping instance without public ip addr", instance_id=inst.id)
            continue
        try:
            ip = str(ipaddress.ip_address(inst.public_address.strip()))
        except ValueError:
            log_event("WARN", "skipping instance with invalid ip addr", instance_id=inst.id, address=inst.public_address)
            continue
        if ip not in addresses:
            addresses.append(ip)
    return addresses
