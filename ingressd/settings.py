from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass
from typing import Mapping

from .errors import ConfigError

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

# One DNS label of an ASCII host name; IDNs must be given in punycode.
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9_-]{1,63}(?<!-)$")


def parse_duration(raw: str) -> float:
    """Parse a duration such as ``30s``, ``1m30s`` or ``500ms`` into seconds.

    A bare number is read as seconds.
    """
    value = raw.strip().lower()
    if not value:
        raise ValueError("empty duration")
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration: {raw!r}")
        return seconds
    pos = 0
    total = 0.0
    for m in _DURATION_PART_RE.finditer(value):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(value):
        raise ValueError(f"invalid duration: {raw!r}")
    return total


def _env_str(env: Mapping[str, str], name: str) -> str:
    raw = env.get(name, "").strip()
    if not raw:
        raise ConfigError(f"missing required environment variable: {name}")
    return raw


def _env_duration(env: Mapping[str, str], name: str, default: str) -> float:
    raw = env.get(name, "").strip() or default
    try:
        seconds = parse_duration(raw)
    except ValueError as e:
        raise ConfigError(f"invalid {name}: {e}") from e
    if seconds <= 0:
        raise ConfigError(f"invalid {name}: must be greater than zero")
    return seconds


def _env_int(env: Mapping[str, str], name: str, default: int, lo: int, hi: int | None = None) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"invalid {name}: {raw!r} is not an integer") from e
    if value < lo or (hi is not None and value > hi):
        bound = f"{lo}..{hi}" if hi is not None else f">= {lo}"
        raise ConfigError(f"invalid {name}: {value} (expected {bound})")
    return value


def parse_tag(raw: str) -> tuple[str, str]:
    """Split an ``key:value`` EC2 tag on the first colon."""
    key, sep, value = raw.partition(":")
    if not sep or not key.strip() or not value.strip():
        raise ConfigError(f"invalid AWS_EC2_TAG (expected key:value): {raw!r}")
    return key.strip(), value.strip()


def parse_records(raw: str) -> tuple[str, ...]:
    records: list[str] = []
    for item in raw.split(","):
        name = item.strip().rstrip(".").lower()
        if not name:
            continue
        if len(name) > 253 or not all(_LABEL_RE.match(label) for label in name.split(".")):
            raise ConfigError(f"invalid AWS_ROUTE53_RECORDS: {name!r} is not an ASCII host name")
        if name not in records:
            records.append(name)
    if not records:
        raise ConfigError("missing AWS_ROUTE53_RECORDS: no record names given")
    return tuple(records)


@dataclass(frozen=True)
class Settings:
    # Discovery
    tag_key: str
    tag_value: str
    region: str
    records: tuple[str, ...]

    # Loop + HTTP surface
    poll_interval_s: float = 30.0
    port: int = 8081
    shutdown_grace_s: float = 10.0
    log_level: str = "INFO"

    # Health checks
    health_timeout_s: float = 10.0
    health_attempts: int = 3
    health_workers: int = 32

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from the environment, raising ConfigError on any bad value."""
        env = os.environ if env is None else env

        tag_key, tag_value = parse_tag(_env_str(env, "AWS_EC2_TAG"))
        region = _env_str(env, "AWS_REGION")
        records = parse_records(_env_str(env, "AWS_ROUTE53_RECORDS"))

        log_level = (env.get("LOG_LEVEL", "").strip() or "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"invalid LOG_LEVEL: {log_level!r}")

        return cls(
            tag_key=tag_key,
            tag_value=tag_value,
            region=region,
            records=records,
            poll_interval_s=_env_duration(env, "POLL_INTERVAL", "30s"),
            port=_env_int(env, "PORT", 8081, 1, 65535),
            shutdown_grace_s=_env_duration(env, "SHUTDOWN_GRACE_PERIOD", "10s"),
            log_level=log_level,
            health_timeout_s=_env_duration(env, "HEALTH_CHECK_TIMEOUT", "10s"),
            health_attempts=_env_int(env, "HEALTH_CHECK_ATTEMPTS", 3, 1),
            health_workers=_env_int(env, "HEALTH_CHECK_WORKERS", 32, 1),
        )
