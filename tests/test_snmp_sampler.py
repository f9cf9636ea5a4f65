import asyncio

import pytest
from pysnmp.proto.rfc1902 import Counter64, Integer, ObjectName, OctetString
from pysnmp.proto.rfc1905 import NoSuchInstance

from trafficwatch.collectors import snmp
from trafficwatch.collectors.snmp import SnmpSampler, counter_oids, ip_from_address_oid
from trafficwatch.core.exceptions import SamplerError
from trafficwatch.services.rate_engine import MAX_COUNTER32, MAX_COUNTER64


class _FakeTarget:
    created: list = []

    @classmethod
    async def create(cls, address, timeout=1, retries=5):
        cls.created.append((address, timeout, retries))
        return cls()


class _FakeEngine:
    def __init__(self):
        self.closed = False

    def close_dispatcher(self):
        self.closed = True


@pytest.fixture
def fake_transport(monkeypatch):
    _FakeTarget.created = []
    monkeypatch.setattr(snmp, "UdpTransportTarget", _FakeTarget)
    monkeypatch.setattr(snmp, "SnmpEngine", _FakeEngine)
    monkeypatch.setattr(snmp, "ObjectType", lambda identity: identity)
    monkeypatch.setattr(snmp, "ObjectIdentity", lambda oid: oid)
    return _FakeTarget


def _answer(monkeypatch, response):
    requested = []

    async def fake_get_cmd(engine, auth, target, context, *object_types):
        requested.extend(object_types)
        return response

    monkeypatch.setattr(snmp, "get_cmd", fake_get_cmd)
    return requested


def test_counter_oids():
    assert counter_oids(2) == ("1.3.6.1.2.1.31.1.1.1.6.2", "1.3.6.1.2.1.31.1.1.1.10.2")
    assert counter_oids(2, high_capacity=False) == ("1.3.6.1.2.1.2.2.1.10.2", "1.3.6.1.2.1.2.2.1.16.2")


def test_ip_from_address_oid():
    assert ip_from_address_oid("1.3.6.1.2.1.4.20.1.2.192.168.56.3") == "192.168.56.3"
    with pytest.raises(ValueError):
        ip_from_address_oid("1.3")


def test_counter_width_follows_mode():
    assert SnmpSampler("10.0.0.1", 2).counter_max == MAX_COUNTER64
    assert SnmpSampler("10.0.0.1", 2, high_capacity=False).counter_max == MAX_COUNTER32


def test_fetch_counters(monkeypatch, fake_transport):
    big = MAX_COUNTER64 - 7
    requested = _answer(
        monkeypatch,
        (
            None,
            Integer(0),
            Integer(0),
            [
                (ObjectName("1.3.6.1.2.1.31.1.1.1.6.2"), Counter64(big)),
                (ObjectName("1.3.6.1.2.1.31.1.1.1.10.2"), Counter64(12345)),
            ],
        ),
    )
    sampler = SnmpSampler("10.0.0.1", 2, port=1161, timeout=1.5, retries=2)

    sample = asyncio.run(sampler.fetch_counters())

    assert sample.in_counter == big
    assert sample.out_counter == 12345
    assert sample.timestamp_ms > 0
    assert requested == ["1.3.6.1.2.1.31.1.1.1.6.2", "1.3.6.1.2.1.31.1.1.1.10.2"]
    assert fake_transport.created == [(("10.0.0.1", 1161), 1.5, 2)]


def test_fetch_counters_error_indication(monkeypatch, fake_transport):
    _answer(monkeypatch, ("No SNMP response received before timeout", Integer(0), Integer(0), []))

    with pytest.raises(SamplerError) as exc_info:
        asyncio.run(SnmpSampler("10.0.0.1", 2).fetch_counters())

    assert "No SNMP response" in str(exc_info.value)
    assert exc_info.value.host == "10.0.0.1"


def test_fetch_counters_error_status(monkeypatch, fake_transport):
    _answer(monkeypatch, (None, Integer(2), Integer(1), []))

    with pytest.raises(SamplerError):
        asyncio.run(SnmpSampler("10.0.0.1", 2).fetch_counters())


def test_fetch_counters_missing_instance(monkeypatch, fake_transport):
    _answer(
        monkeypatch,
        (
            None,
            Integer(0),
            Integer(0),
            [
                (ObjectName("1.3.6.1.2.1.31.1.1.1.6.99"), NoSuchInstance("")),
                (ObjectName("1.3.6.1.2.1.31.1.1.1.10.99"), NoSuchInstance("")),
            ],
        ),
    )

    with pytest.raises(SamplerError, match="not available"):
        asyncio.run(SnmpSampler("10.0.0.1", 99).fetch_counters())


def test_interface_name(monkeypatch, fake_transport):
    requested = _answer(
        monkeypatch,
        (None, Integer(0), Integer(0), [(ObjectName("1.3.6.1.2.1.2.2.1.2.2"), OctetString("ether2"))]),
    )

    name = asyncio.run(SnmpSampler("10.0.0.1", 2).interface_name())

    assert name == "ether2"
    assert requested == ["1.3.6.1.2.1.2.2.1.2.2"]


def test_interface_ip_walks_address_table(monkeypatch, fake_transport):
    rows = [
        [(ObjectName("1.3.6.1.2.1.4.20.1.2.10.0.2.15"), Integer(1))],
        [(ObjectName("1.3.6.1.2.1.4.20.1.2.192.168.56.3"), Integer(2))],
    ]

    async def fake_walk_cmd(engine, auth, target, context, *object_types, **options):
        assert options["lexicographicMode"] is False
        for row in rows:
            yield None, Integer(0), Integer(0), row

    monkeypatch.setattr(snmp, "walk_cmd", fake_walk_cmd)

    assert asyncio.run(SnmpSampler("10.0.0.1", 2).interface_ip()) == "192.168.56.3"
    assert asyncio.run(SnmpSampler("10.0.0.1", 5).interface_ip()) is None


def _walk(monkeypatch, responses):
    async def fake_walk_cmd(engine, auth, target, context, *object_types, **options):
        for response in responses:
            yield response

    monkeypatch.setattr(snmp, "walk_cmd", fake_walk_cmd)


def test_interface_ip_malformed_row(monkeypatch, fake_transport):
    _walk(
        monkeypatch,
        [(None, Integer(0), Integer(0), [(ObjectName("1.3.6.1.2.1.4.20.1.2.10.0.2.15"), OctetString("abc"))])],
    )

    with pytest.raises(SamplerError, match="Malformed"):
        asyncio.run(SnmpSampler("10.0.0.1", 2).interface_ip())


def test_interface_ip_skips_missing_values(monkeypatch, fake_transport):
    _walk(
        monkeypatch,
        [
            (None, Integer(0), Integer(0), [(ObjectName("1.3.6.1.2.1.4.20.1.2.10.0.2.15"), NoSuchInstance(""))]),
            (None, Integer(0), Integer(0), [(ObjectName("1.3.6.1.2.1.4.20.1.2.172.16.0.1"), Integer(2))]),
        ],
    )

    assert asyncio.run(SnmpSampler("10.0.0.1", 2).interface_ip()) == "172.16.0.1"


def test_interface_ip_error_partway_through_walk(monkeypatch, fake_transport):
    _walk(
        monkeypatch,
        [
            (None, Integer(0), Integer(0), [(ObjectName("1.3.6.1.2.1.4.20.1.2.10.0.2.15"), Integer(1))]),
            ("No SNMP response received before timeout", Integer(0), Integer(0), []),
        ],
    )

    with pytest.raises(SamplerError, match="No SNMP response"):
        asyncio.run(SnmpSampler("10.0.0.1", 2).interface_ip())


def test_close_releases_engine(monkeypatch, fake_transport):
    _answer(monkeypatch, (None, Integer(0), Integer(0), [(ObjectName("1.3.6.1.2.1.2.2.1.2.2"), OctetString("x"))]))
    sampler = SnmpSampler("10.0.0.1", 2)
    asyncio.run(sampler.interface_name())
    engine = sampler._engine

    asyncio.run(sampler.close())

    assert engine.closed is True
    assert sampler._engine is None
