import pytest

from ingressd.errors import ConfigError
from ingressd.settings import Settings, parse_duration


def _env(**overrides):
    env = {
        "AWS_EC2_TAG": "Name:haproxy",
        "AWS_REGION": "eu-west-1",
        "AWS_ROUTE53_RECORDS": "syscll.org,ingress.syscll.org,haproxy.syscll.org",
    }
    env.update(overrides)
    return {k: v for k, v in env.items() if v is not None}


def test_defaults_from_minimal_env():
    s = Settings.from_env(_env())
    assert (s.tag_key, s.tag_value) == ("Name", "haproxy")
    assert s.region == "eu-west-1"
    assert s.records == ("syscll.org", "ingress.syscll.org", "haproxy.syscll.org")
    assert s.poll_interval_s == 30.0
    assert s.port == 8081
    assert s.health_timeout_s == 10.0
    assert s.health_attempts == 3
    assert s.log_level == "INFO"


def test_tag_splits_on_first_colon_only():
    s = Settings.from_env(_env(AWS_EC2_TAG="role:lb:edge"))
    assert (s.tag_key, s.tag_value) == ("role", "lb:edge")


def test_records_are_normalized_and_deduplicated():
    s = Settings.from_env(_env(AWS_ROUTE53_RECORDS=" Syscll.org. , ,syscll.org,a.syscll.org"))
    assert s.records == ("syscll.org", "a.syscll.org")


def test_records_must_be_ascii_host_names():
    with pytest.raises(ConfigError, match="bücher.example"):
        Settings.from_env(_env(AWS_ROUTE53_RECORDS="bücher.example"))
    s = Settings.from_env(_env(AWS_ROUTE53_RECORDS="xn--bcher-kva.example,_acme.syscll.org"))
    assert s.records == ("xn--bcher-kva.example", "_acme.syscll.org")


@pytest.mark.parametrize(
    "overrides",
    [
        {"AWS_EC2_TAG": None},
        {"AWS_EC2_TAG": "haproxy"},
        {"AWS_EC2_TAG": ":haproxy"},
        {"AWS_EC2_TAG": "Name:"},
        {"AWS_REGION": ""},
        {"AWS_ROUTE53_RECORDS": None},
        {"AWS_ROUTE53_RECORDS": " , ,"},
        {"AWS_ROUTE53_RECORDS": "syscll.org,bücher.example"},
        {"AWS_ROUTE53_RECORDS": "-bad.syscll.org"},
        {"AWS_ROUTE53_RECORDS": "a..syscll.org"},
        {"AWS_ROUTE53_RECORDS": "syscll.org:8080"},
        {"POLL_INTERVAL": "soon"},
        {"POLL_INTERVAL": "0s"},
        {"PORT": "http"},
        {"PORT": "70000"},
        {"HEALTH_CHECK_ATTEMPTS": "0"},
        {"HEALTH_CHECK_TIMEOUT": "-1s"},
        {"LOG_LEVEL": "chatty"},
    ],
)
def test_bad_configuration_is_fatal(overrides):
    with pytest.raises(ConfigError):
        Settings.from_env(_env(**overrides))


def test_optional_values_are_parsed():
    s = Settings.from_env(
        _env(POLL_INTERVAL="1m30s", PORT="9000", HEALTH_CHECK_TIMEOUT="500ms", HEALTH_CHECK_ATTEMPTS="5", LOG_LEVEL="debug")
    )
    assert s.poll_interval_s == 90.0
    assert s.port == 9000
    assert s.health_timeout_s == pytest.approx(0.5)
    assert s.health_attempts == 5
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize(
    "raw,seconds",
    [("30s", 30.0), ("5m", 300.0), ("1h", 3600.0), ("1m30s", 90.0), ("250ms", 0.25), ("15", 15.0), ("2.5s", 2.5)],
)
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "s", "10x", "1m 30s", "inf", "30s5"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)
