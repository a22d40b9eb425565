from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from ingressd.dns import Route53Dns, Zone, build_changes, resolve_zone
from ingressd.errors import (
    AmbiguousZoneError,
    RecordUpdateError,
    ZoneListingError,
    ZoneNotFoundError,
    ZoneResolutionError,
)

from fakes import FakeDns


def _route53():
    client = boto3.client(
        "route53",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    return client, Stubber(client)


def _zones_page(*zones, next_marker=None):
    page = {
        "HostedZones": [{"Id": zid, "Name": name, "CallerReference": f"ref-{zid}"} for zid, name in zones],
        "Marker": "",
        "IsTruncated": next_marker is not None,
        "MaxItems": "100",
    }
    if next_marker is not None:
        page["NextMarker"] = next_marker
    return page


_CHANGE_OK = {"ChangeInfo": {"Id": "/change/C1", "Status": "PENDING", "SubmittedAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}}


# -- zone resolution -------------------------------------------------------


def test_longest_suffix_wins():
    dns = FakeDns(zones=[Zone("z1", "syscll.org."), Zone("z2", "ingressd.syscll.org.")])
    assert resolve_zone(dns, "ingressd.syscll.org") == "z2"
    assert resolve_zone(dns, "other.syscll.org") == "z1"
    assert resolve_zone(dns, "api.ingressd.syscll.org") == "z2"


def test_listing_order_does_not_matter():
    dns = FakeDns(zones=[Zone("z2", "ingressd.syscll.org."), Zone("z1", "syscll.org.")])
    assert resolve_zone(dns, "ingressd.syscll.org") == "z2"
    assert resolve_zone(dns, "syscll.org") == "z1"


@pytest.mark.parametrize("zone_name", ["syscll.org", "syscll.org."])
def test_trailing_dot_is_optional(zone_name):
    dns = FakeDns(zones=[Zone("zone-1", zone_name)])
    assert resolve_zone(dns, "syscll.org") == "zone-1"
    assert resolve_zone(dns, "syscll.org.") == "zone-1"


def test_matching_is_case_insensitive():
    dns = FakeDns(zones=[Zone("zone-1", "Syscll.ORG.")])
    assert resolve_zone(dns, "www.syscll.org") == "zone-1"


def test_no_matching_zone_names_the_record():
    dns = FakeDns(zones=[Zone("zone-1", "example.com.")])
    with pytest.raises(ZoneNotFoundError) as exc:
        resolve_zone(dns, "syscll.org")
    assert exc.value.record == "syscll.org"
    assert "syscll.org" in str(exc.value)


def test_suffix_must_end_on_a_label_boundary():
    dns = FakeDns(zones=[Zone("zone-1", "syscll.org.")])
    with pytest.raises(ZoneNotFoundError):
        resolve_zone(dns, "notsyscll.org")


def test_duplicate_longest_suffix_is_ambiguous():
    dns = FakeDns(zones=[Zone("zb", "syscll.org."), Zone("za", "syscll.org"), Zone("zc", "org.")])
    with pytest.raises(AmbiguousZoneError) as exc:
        resolve_zone(dns, "www.syscll.org")
    assert exc.value.zone_ids == ["za", "zb"]


def test_listing_failure_is_distinct_from_not_found():
    dns = FakeDns(fail_list=True)
    with pytest.raises(ZoneListingError):
        resolve_zone(dns, "syscll.org")
    assert issubclass(ZoneListingError, ZoneResolutionError)
    assert not issubclass(ZoneListingError, ZoneNotFoundError)


def test_every_resolution_fetches_a_fresh_listing():
    dns = FakeDns()
    resolve_zone(dns, "syscll.org")
    resolve_zone(dns, "syscll.org")
    assert dns.list_calls == 2


# -- change building -------------------------------------------------------


def test_build_changes_splits_families_and_sorts_values():
    changes = build_changes("syscll.org", ["192.168.0.10", "2001:db8::1", "192.168.0.2", "192.168.0.2"])
    assert [c["ResourceRecordSet"]["Type"] for c in changes] == ["A", "AAAA"]
    assert changes[0]["ResourceRecordSet"]["ResourceRecords"] == [{"Value": "192.168.0.2"}, {"Value": "192.168.0.10"}]
    assert changes[1]["ResourceRecordSet"]["ResourceRecords"] == [{"Value": "2001:db8::1"}]
    assert all(c["Action"] == "UPSERT" and c["ResourceRecordSet"]["TTL"] == 60 for c in changes)


def test_build_changes_leaves_absent_family_untouched():
    changes = build_changes("syscll.org", ["192.168.0.1"])
    assert len(changes) == 1
    assert changes[0]["ResourceRecordSet"]["Type"] == "A"


def test_build_changes_rejects_empty_values():
    with pytest.raises(ValueError):
        build_changes("syscll.org", [])


# -- Route 53 adapter ------------------------------------------------------


def test_route53_list_zones_follows_pagination():
    client, stubber = _route53()
    stubber.add_response("list_hosted_zones", _zones_page(("/hostedzone/Z1", "syscll.org."), next_marker="Z2"), {})
    stubber.add_response(
        "list_hosted_zones", _zones_page(("/hostedzone/Z2", "ingressd.syscll.org.")), {"Marker": "Z2"}
    )
    with stubber:
        zones = Route53Dns(client).list_zones()
    stubber.assert_no_pending_responses()
    assert zones == [Zone("/hostedzone/Z1", "syscll.org."), Zone("/hostedzone/Z2", "ingressd.syscll.org.")]


def test_route53_list_zones_error():
    client, stubber = _route53()
    stubber.add_client_error("list_hosted_zones", service_error_code="AccessDenied", service_message="route53 error")
    with stubber, pytest.raises(ZoneListingError):
        Route53Dns(client).list_zones()


def test_route53_upsert_sends_single_a_record_change():
    client, stubber = _route53()
    stubber.add_response(
        "change_resource_record_sets",
        _CHANGE_OK,
        {
            "HostedZoneId": "zone-1",
            "ChangeBatch": {
                "Changes": [
                    {
                        "Action": "UPSERT",
                        "ResourceRecordSet": {
                            "Name": "syscll.org",
                            "Type": "A",
                            "TTL": 60,
                            "ResourceRecords": [{"Value": "192.168.0.1"}],
                        },
                    }
                ]
            },
        },
    )
    with stubber:
        Route53Dns(client).upsert_record_set("zone-1", "syscll.org", ["192.168.0.1"])
    stubber.assert_no_pending_responses()


def test_route53_upsert_rejects_empty_value_list_without_calling_out():
    client, stubber = _route53()
    with stubber, pytest.raises(ValueError):
        Route53Dns(client).upsert_record_set("zone-1", "syscll.org", [])
    stubber.assert_no_pending_responses()


def test_route53_upsert_error():
    client, stubber = _route53()
    stubber.add_client_error(
        "change_resource_record_sets", service_error_code="InvalidChangeBatch", service_message="route53 error"
    )
    with stubber, pytest.raises(RecordUpdateError) as exc:
        Route53Dns(client).upsert_record_set("zone-1", "syscll.org", ["192.168.0.1"])
    assert "route53 error" in str(exc.value)


def test_route53_zones_feed_the_resolver():
    client, stubber = _route53()
    stubber.add_response("list_hosted_zones", _zones_page(("zone-1", "syscll.org")), {})
    with stubber:
        assert resolve_zone(Route53Dns(client), "syscll.org") == "zone-1"
