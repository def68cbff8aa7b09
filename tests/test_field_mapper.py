from __future__ import annotations

import pytest

from air_ingest.decoder import NumericUpdate, Rejected, StructuredUpdate, UnknownNumericUpdate, Unrecognized
from air_ingest.diagnostics import IngestStats
from air_ingest.field_mapper import (
    FieldUpdate,
    coerce_number,
    coerce_relay_pin,
    coerce_relay_state,
    coerce_status,
    resolve,
)


def _structured(**fields) -> StructuredUpdate:
    return StructuredUpdate(topic="esp32/telemetry", fields=fields)


@pytest.mark.parametrize("raw", [1, "1", True, 1.0, "on", " ON "])
def test_relay_pin_truthy_forms(raw) -> None:
    assert coerce_relay_pin(raw) == 1


@pytest.mark.parametrize("raw", [0, "0", False, 0.0, "off", "OFF"])
def test_relay_pin_falsy_forms(raw) -> None:
    assert coerce_relay_pin(raw) == 0


@pytest.mark.parametrize("raw", [2, -1, "yes", "", None, [1], {"v": 1}])
def test_relay_pin_other_forms_are_dropped(raw) -> None:
    assert coerce_relay_pin(raw) is None


@pytest.mark.parametrize("raw,expected", [("on", 1), ("On", 1), ("ON", 1), ("off", 0), ("idle", 0), ("", 0)])
def test_relay_state_strings(raw, expected) -> None:
    assert coerce_relay_state(raw) == expected


def test_relay_state_requires_a_string() -> None:
    assert coerce_relay_state(1) is None
    assert coerce_relay_state(None) is None


def test_number_coercion_never_confuses_invalid_with_zero() -> None:
    assert coerce_number(0) == 0
    assert coerce_number("17.5") == 17.5
    assert coerce_number(True) is None
    assert coerce_number(None) is None
    assert coerce_number("warm") is None
    assert coerce_number(float("nan")) is None


def test_status_coercion() -> None:
    assert coerce_status("calibrating") == "calibrating"
    assert coerce_status(3) == "3"
    assert coerce_status(False) is None
    assert coerce_status({"a": 1}) is None


def test_gas_aliases_resolve_to_same_field() -> None:
    assert resolve(_structured(gas_mq135=450)) == resolve(_structured(co2_eq_ppm=450))
    assert resolve(_structured(gas_mq135=450)) == [FieldUpdate("co2_eq_ppm", 450)]


def test_canonical_gas_key_wins_over_legacy_alias() -> None:
    assert resolve(_structured(gas_mq135=450, co2_eq_ppm=500)) == [FieldUpdate("co2_eq_ppm", 500)]


def test_invalid_canonical_gas_key_falls_back_to_alias() -> None:
    assert resolve(_structured(gas_mq135=450, co2_eq_ppm="n/a")) == [FieldUpdate("co2_eq_ppm", 450)]


def test_named_state_overrides_pin_flag() -> None:
    assert resolve(_structured(relay_pin=1, state="off")) == [FieldUpdate("relay_pin", 0)]
    assert resolve(_structured(relay_pin=False, state="On")) == [FieldUpdate("relay_pin", 1)]


def test_invalid_named_state_keeps_pin_flag() -> None:
    assert resolve(_structured(relay_pin="1", state=None)) == [FieldUpdate("relay_pin", 1)]


def test_structured_order_is_stable() -> None:
    updates = resolve(_structured(status="ok", state="on", humidity=60, temperature=23.5))

    assert [u.field for u in updates] == ["temperature", "humidity", "relay_pin", "device_status"]


def test_invalid_values_are_left_out() -> None:
    assert resolve(_structured(temperature="hot", humidity=None)) == []


def test_numeric_and_unknown_numeric() -> None:
    assert resolve(NumericUpdate("home/air/humidity", "humidity", 55)) == [FieldUpdate("humidity", 55)]
    assert resolve(UnknownNumericUpdate("sensor/pressure", 1013)) == [
        FieldUpdate("unknown_topics", 1013, key="sensor/pressure")
    ]


def test_drops_are_reported_to_sink() -> None:
    stats = IngestStats()

    assert resolve(Rejected("home/air/temperature", "non-numeric"), sink=stats) == []
    assert resolve(Unrecognized("esp32/telemetry", "not-json-object"), sink=stats) == []
    assert resolve(_structured(rssi=-60), sink=stats) == []

    counts = stats.snapshot()
    assert counts["rejected"] == 1
    assert counts["unrecognized"] == 1
    assert counts["empty"] == 1
    assert counts["last_drop_reason"] == {
        "home/air/temperature": "non-numeric",
        "esp32/telemetry": "not-json-object",
    }


def test_drop_reasons_keep_only_recent_topics() -> None:
    stats = IngestStats(max_drop_topics=3)

    for i in range(10):
        resolve(Rejected(f"sensor/junk{i}", "non-numeric-unknown-topic"), sink=stats)
    resolve(Rejected("sensor/junk8", "non-numeric-unknown-topic"), sink=stats)

    counts = stats.snapshot()
    assert counts["rejected"] == 11
    assert list(counts["last_drop_reason"]) == ["sensor/junk7", "sensor/junk9", "sensor/junk8"]
