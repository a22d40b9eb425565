from __future__ import annotations


class IngressdError(Exception):
    pass


class ConfigError(IngressdError):
    """Missing or invalid startup configuration. Always fatal."""


class DiscoveryError(IngressdError):
    """The inventory provider could not be queried."""


class InvalidEndpointError(IngressdError):
    """An endpoint address cannot be turned into a probe URL."""


class ZoneResolutionError(IngressdError):
    pass


class ZoneListingError(ZoneResolutionError):
    """The DNS provider could not list its zones."""


class ZoneNotFoundError(ZoneResolutionError):
    def __init__(self, record: str):
        super().__init__(f"no zone id found for: {record}")
        self.record = record


class AmbiguousZoneError(ZoneResolutionError):
    def __init__(self, record: str, zone_ids: list[str]):
        super().__init__(f"multiple zones share the longest suffix for {record}: {', '.join(zone_ids)}")
        self.record = record
        self.zone_ids = zone_ids


class RecordUpdateError(IngressdError):
    """The DNS provider rejected or failed the record set upsert."""


class NoHealthyEndpointsError(IngressdError):
    def __init__(self, record: str):
        super().__init__(f"all health checks failed for {record}, will not update")
        self.record = record
