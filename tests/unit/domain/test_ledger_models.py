"""Unit tests for ledger value normalization and record decoding."""

from datetime import datetime, timezone

import pytest

from esg_registry.domain.models.ledger import (
    LEDGER_RECORD_FIELDS,
    ZERO_ADDRESS,
    decode_ledger_record,
    normalize_ledger_value,
    to_int,
)


def _raw_record(**overrides: object) -> dict[str, object]:
    raw: dict[str, object] = {
        "owner": "0x" + "AB" * 20,
        "ownerName": "Acme Corp",
        "timestamp": 1_700_000_000,
        "dataType": "carbon_emissions",
        "value": "1000",
        "unit": "tonnes CO2",
        "contentHash": bytes.fromhex("11" * 32),
        "verifier": ZERO_ADDRESS,
        "isVerified": False,
        "comments": "",
    }
    raw.update(overrides)
    return raw


class TestNormalizeLedgerValue:
    def test_large_integers_keep_precision(self) -> None:
        big = 2**255 + 1
        assert normalize_ledger_value(big) == big

    def test_bool_stays_bool(self) -> None:
        assert normalize_ledger_value(True) is True

    def test_bytes_become_hex(self) -> None:
        assert normalize_ledger_value(b"\x01\xff") == "0x01ff"

    def test_addresses_lower_cased(self) -> None:
        assert normalize_ledger_value("0x" + "AB" * 20) == "0x" + "ab" * 20

    def test_other_strings_untouched(self) -> None:
        assert normalize_ledger_value("Tonnes CO2") == "Tonnes CO2"

    def test_nested_structures(self) -> None:
        value = normalize_ledger_value({"ids": (1, 2), "hash": b"\x00"})
        assert value == {"ids": [1, 2], "hash": "0x00"}

    def test_float_rejected(self) -> None:
        with pytest.raises(TypeError):
            normalize_ledger_value(1.0)


class TestToInt:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(5, 5), ("42", 42), ("0x2a", 42)],
    )
    def test_accepted_forms(self, value: object, expected: int) -> None:
        assert to_int(value) == expected

    def test_bool_rejected(self) -> None:
        with pytest.raises(TypeError):
            to_int(True)


class TestDecodeLedgerRecord:
    def test_decodes_mapping(self) -> None:
        record = decode_ledger_record(7, _raw_record())

        assert record.record_id == 7
        assert record.owner_address == "0x" + "ab" * 20
        assert record.timestamp == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert record.content_hash == "0x" + "11" * 32
        assert record.verifier_address is None
        assert record.is_verified is False

    def test_decodes_positional_struct(self) -> None:
        raw = _raw_record()
        record = decode_ledger_record("0x3", tuple(raw[name] for name in LEDGER_RECORD_FIELDS))
        assert record.record_id == 3
        assert record.value == "1000"

    def test_zero_timestamp_is_none(self) -> None:
        assert decode_ledger_record(1, _raw_record(timestamp=0)).timestamp is None

    def test_verifier_present_after_review(self) -> None:
        record = decode_ledger_record(
            1, _raw_record(verifier="0x" + "CD" * 20, isVerified=True)
        )
        assert record.verifier_address == "0x" + "cd" * 20
        assert record.is_verified is True

    def test_wrong_field_count_rejected(self) -> None:
        with pytest.raises(ValueError, match="fields"):
            decode_ledger_record(1, ("0x" + "ab" * 20, "name"))

    def test_missing_fields_rejected(self) -> None:
        raw = _raw_record()
        del raw["unit"]
        with pytest.raises(ValueError, match="unit"):
            decode_ledger_record(1, raw)

    def test_scalar_rejected(self) -> None:
        with pytest.raises(ValueError):
            decode_ledger_record(1, 12)
