"""
SneakerChain Hardening Tests

Tests for input validators, width bounds, invariant checks, canonical
digests and the structured logging layer.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import io
import json
import logging
from datetime import datetime, timezone

import pytest

from conftest import ADMIN, ALICE, BOB, sneaker_fields
from sneakerchain.canonical import digest, jcs_canonicalize
from sneakerchain.errors import InvariantViolation, Overflow, RegistryError, ValidationError
from sneakerchain.hardening import (
    ZERO_ADDRESS,
    InvariantChecker,
    Validators,
    normalize_address,
    parse_iso_timestamp,
    require_token_id,
    require_width,
)
from sneakerchain.observability import (
    RegistryLayer,
    configure_logging,
    get_logger,
    set_correlation_id,
    timed_operation,
)
from sneakerchain.registry import Brand


# =============================================================================
# VALIDATORS
# =============================================================================

class TestAddressValidation:
    """Tests for address validation."""

    def test_lowercases(self):
        assert normalize_address("0x" + "AbCd" * 10) == "0x" + "abcd" * 10

    @pytest.mark.parametrize("value", [
        "0x123",
        "1x" + "0" * 40,
        "0x" + "g" * 40,
        "0x" + "0" * 41,
        None,
        42,
    ])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            normalize_address(value)

    def test_zero_address_is_well_formed(self):
        assert normalize_address(ZERO_ADDRESS) == ZERO_ADDRESS


class TestScalarValidation:
    """Tests for string, uint and timestamp validators."""

    def test_string_strips_null_bytes(self):
        assert Validators.validate_string(" Shadow\x00 ", "colorway").unwrap() == "Shadow"

    def test_string_too_long(self):
        result = Validators.validate_string("x" * 300, "name")
        assert not result.is_valid
        assert result.errors[0].field == "name"

    def test_uint_rejects_bool_and_float(self):
        assert not Validators.validate_uint(True, "size").is_valid
        assert not Validators.validate_uint(10.5, "size").is_valid

    def test_timestamp_forms(self):
        expected = 1523059200
        assert Validators.validate_timestamp(expected).unwrap() == expected
        assert Validators.validate_timestamp("2018-04-07T00:00:00Z").unwrap() == expected
        assert Validators.validate_timestamp("2018-04-07T02:00:00+02:00").unwrap() == expected
        aware = datetime(2018, 4, 7, tzinfo=timezone.utc)
        assert Validators.validate_timestamp(aware).unwrap() == expected
        assert Validators.validate_timestamp(datetime(2018, 4, 7)).unwrap() == expected

    def test_bad_timestamp(self):
        assert not Validators.validate_timestamp("yesterday").is_valid
        assert not Validators.validate_timestamp(-5).is_valid

    def test_parse_iso_naive_is_utc(self):
        assert parse_iso_timestamp("2018-04-07T00:00:00").tzinfo == timezone.utc
        with pytest.raises(ValueError):
            parse_iso_timestamp("")


class TestWidths:
    """Tests for fixed-width bounds."""

    def test_boundaries(self):
        assert require_width("token_id", (1 << 32) - 1, 32) == (1 << 32) - 1
        with pytest.raises(Overflow) as exc:
            require_width("token_id", 1 << 32, 32)
        assert str(exc.value) == f"token_id={1 << 32} does not fit uint32"

    def test_negative_does_not_fit(self):
        with pytest.raises(Overflow):
            require_width("manufactured_at", -1, 64)

    def test_token_id_must_be_plain_int(self):
        assert require_token_id(7) == 7
        for value in (True, 7.0, "7", None):
            with pytest.raises(ValidationError):
                require_token_id(value)

    def test_identity_space_exhausted(self, registry):
        registry.registry.next_id = lambda: 1 << 32
        with pytest.raises(Overflow):
            registry.mint(ADMIN, ALICE, **sneaker_fields())
        assert registry.total_supply() == 0


class TestErrorTaxonomy:
    """Every error carries a stable code and derives from RegistryError."""

    def test_codes(self):
        assert Overflow("size", 1, 16).error_code == "overflow"
        assert ValidationError("f", "bad").error_code == "validation_error"
        assert issubclass(InvariantViolation, RegistryError)


# =============================================================================
# INVARIANTS
# =============================================================================

class TestInvariantChecker:
    """Tests for ledger invariant checks."""

    def test_conservation(self):
        InvariantChecker.check_supply_conservation({ALICE: 2, BOB: 1}, 3)
        with pytest.raises(InvariantViolation):
            InvariantChecker.check_supply_conservation({ALICE: 2}, 3)

    def test_balances_match_owners(self):
        InvariantChecker.check_balances_match_owners({ALICE: 2}, [ALICE, ALICE])
        with pytest.raises(InvariantViolation):
            InvariantChecker.check_balances_match_owners({ALICE: 1}, [ALICE, ALICE])
        with pytest.raises(InvariantViolation):
            InvariantChecker.check_balances_match_owners({}, [ZERO_ADDRESS])

    def test_non_negative(self):
        with pytest.raises(InvariantViolation):
            InvariantChecker.check_non_negative("balance", -1)

    def test_invariants_hold_through_activity(self, registry):
        owners = [ALICE, BOB, ALICE, BOB, ALICE]
        for i, owner in enumerate(owners, start=1):
            registry.mint(ADMIN, owner, **sneaker_fields(f"T-{i}"))
            registry.check_invariants()
        registry.transfer(ALICE, BOB, 1)
        registry.approve(BOB, ALICE, 2)
        registry.transfer_from(ALICE, BOB, ALICE, 2)
        registry.transfer(BOB, BOB, 4)
        registry.check_invariants()
        total = sum(registry.balance_of(a) for a in (ALICE, BOB))
        assert total == registry.total_supply() == 5


# =============================================================================
# CANONICAL DIGESTS
# =============================================================================

class TestCanonical:
    """Tests for canonical JSON encoding."""

    def test_key_order_irrelevant(self):
        assert digest({"b": 1, "a": 2}) == digest({"a": 2, "b": 1})

    def test_compact_encoding(self):
        assert jcs_canonicalize({"b": [1, 2], "a": "x"}) == b'{"a":"x","b":[1,2]}'

    def test_enum_by_name(self):
        assert jcs_canonicalize({"brand": Brand.NIKE}) == b'{"brand":"NIKE"}'

    def test_floats_rejected(self):
        with pytest.raises(ValueError):
            jcs_canonicalize({"price": 1.5})


# =============================================================================
# LOGGING
# =============================================================================

class TestStructuredLogging:
    """Tests for the structured log handler."""

    def test_json_lines(self):
        stream = io.StringIO()
        configure_logging("debug", "json", stream=stream)
        set_correlation_id("corr-log")
        get_logger("probe", RegistryLayer.LEDGER).info("Hello", token_id=7)
        event = json.loads(stream.getvalue().splitlines()[-1])
        assert event["message"] == "Hello"
        assert event["layer"] == "ledger"
        assert event["logger"] == "sneakerchain.ledger.probe"
        assert event["correlation_id"] == "corr-log"
        assert event["context"] == {"token_id": 7}

    def test_text_lines(self):
        stream = io.StringIO()
        configure_logging("info", "text", stream=stream)
        get_logger("probe", RegistryLayer.CLI).warning("Careful", error_code="x")
        line = stream.getvalue().strip()
        assert "WARNING" in line and "Careful" in line and "[x]" in line

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging("warning", "json", stream=stream)
        get_logger("probe", RegistryLayer.CLI).info("quiet")
        assert stream.getvalue() == ""

    def test_timed_operation(self, caplog):
        logger = get_logger("probe", RegistryLayer.TRANSFER)

        @timed_operation(logger, "probe_op")
        def fails():
            raise RuntimeError("nope")

        with caplog.at_level(logging.DEBUG, logger="sneakerchain"):
            with pytest.raises(RuntimeError):
                fails()
        record = caplog.records[-1]
        assert record.operation == "probe_op"
        assert record.levelno == logging.WARNING
        assert record.duration_ms >= 0
