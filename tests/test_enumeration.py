"""
SneakerChain Enumeration and Introspection Tests

Tests for balance_of, owner_of, tokens_of_owner, supports_interface and
token_metadata.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from conftest import ADMIN, ALICE, BOB, CAROL, sneaker_fields
from sneakerchain.errors import MetadataUnavailable, NotFound, ValidationError
from sneakerchain.ownership import (
    INTERFACE_SIGNATURE_ERC165,
    INTERFACE_SIGNATURE_ERC721,
    SneakerOwnership,
)


@pytest.fixture
def populated(registry):
    """Tokens 1-5: ALICE holds 1, 3, 5 and BOB holds 2, 4."""
    for i in range(1, 6):
        owner = ALICE if i % 2 else BOB
        registry.mint(ADMIN, owner, **sneaker_fields(f"T-{i}"))
    return registry


class TestTokensOfOwner:
    """Tests for tokens_of_owner."""

    def test_ascending_ids(self, populated):
        assert populated.tokens_of_owner(ALICE) == [1, 3, 5]
        assert populated.tokens_of_owner(BOB) == [2, 4]

    def test_empty_owner(self, populated):
        assert populated.tokens_of_owner(CAROL) == []

    def test_zero_balance_skips_scan(self, populated, monkeypatch):
        def no_scan(owner, token_id):
            raise AssertionError(f"scanned token {token_id}")

        monkeypatch.setattr(populated.ledger, "owns", no_scan)
        assert populated.tokens_of_owner(CAROL) == []

    def test_scan_stops_at_balance(self, populated, monkeypatch):
        scanned = []
        owns = populated.ledger.owns

        def counting(owner, token_id):
            scanned.append(token_id)
            return owns(owner, token_id)

        monkeypatch.setattr(populated.ledger, "owns", counting)
        assert populated.tokens_of_owner(BOB) == [2, 4]
        assert scanned == [1, 2, 3, 4]

    def test_empty_registry(self, registry):
        assert registry.tokens_of_owner(ALICE) == []

    def test_tracks_transfers(self, populated):
        populated.transfer(ALICE, CAROL, 3)
        assert populated.tokens_of_owner(ALICE) == [1, 5]
        assert populated.tokens_of_owner(CAROL) == [3]

    def test_length_matches_balance(self, populated):
        for owner in (ALICE, BOB, CAROL):
            assert len(populated.tokens_of_owner(owner)) == populated.balance_of(owner)

    def test_malformed_owner(self, populated):
        with pytest.raises(ValidationError):
            populated.tokens_of_owner("not-an-address")


class TestViews:
    """Tests for the read-only ledger views."""

    def test_balance_of_unknown_address(self, registry):
        assert registry.balance_of(CAROL) == 0

    def test_owner_of_unminted(self, populated):
        with pytest.raises(NotFound):
            populated.owner_of(0)
        with pytest.raises(NotFound):
            populated.owner_of(6)

    @pytest.mark.parametrize("token_id", [True, 1.0])
    def test_views_reject_non_integer_identity(self, populated, token_id):
        with pytest.raises(ValidationError):
            populated.owner_of(token_id)
        with pytest.raises(ValidationError):
            populated.approved_for(token_id)
        with pytest.raises(ValidationError):
            populated.record(token_id)
        with pytest.raises(ValidationError):
            populated.history(token_id)

    def test_history(self, populated):
        populated.approve(ALICE, BOB, 1)
        populated.transfer_from(BOB, ALICE, CAROL, 1)
        history = populated.history(1)
        assert [e.event_type for e in history] == ["Transfer", "Approval", "Transfer"]
        assert populated.history(2)[0].to_address == BOB


class TestSupportsInterface:
    """Tests for interface introspection."""

    def test_known_signatures(self):
        assert SneakerOwnership.supports_interface(INTERFACE_SIGNATURE_ERC165)
        assert SneakerOwnership.supports_interface(INTERFACE_SIGNATURE_ERC721)

    def test_accepts_hex_and_int(self):
        assert SneakerOwnership.supports_interface("0x01ffc9a7")
        assert SneakerOwnership.supports_interface("9a20483d")
        assert SneakerOwnership.supports_interface(0x01FFC9A7)

    def test_unknown_signatures(self):
        assert not SneakerOwnership.supports_interface(b"\xff\xff\xff\xff")
        assert not SneakerOwnership.supports_interface("0x12345678")
        assert not SneakerOwnership.supports_interface(0)

    def test_malformed_signatures(self):
        assert not SneakerOwnership.supports_interface(b"\x01\xff")
        assert not SneakerOwnership.supports_interface("0xzzzzzzzz")
        assert not SneakerOwnership.supports_interface(1 << 40)
        assert not SneakerOwnership.supports_interface(True)
        assert not SneakerOwnership.supports_interface(None)


class TestTokenMetadata:
    """Tests for metadata resolution."""

    def test_default_transport(self, minted):
        assert minted.token_metadata(1) == "https://meta.example.com/sneaker/1"

    def test_preferred_transport(self, minted):
        assert minted.token_metadata(1, "IPFS") == "ipfs://meta.example.com/sneaker/1"

    def test_missing_token(self, minted):
        with pytest.raises(NotFound):
            minted.token_metadata(2)

    def test_no_provider(self, role_book):
        registry = SneakerOwnership(role_book)
        registry.mint(ADMIN, ALICE, **sneaker_fields())
        with pytest.raises(MetadataUnavailable):
            registry.token_metadata(1)

    def test_word_provider_with_partial_tail(self, role_book):
        """A URI ending part-way through the second word is copied exactly."""
        uri = b"ar://kicks.example/archive/token/0001"

        class WordProvider:
            def get_metadata(self, token_id, preferred_transport):
                return [uri[:32], uri[32:].ljust(32, b"\x00")], len(uri)

        registry = SneakerOwnership(role_book, metadata_provider=WordProvider())
        registry.mint(ADMIN, ALICE, **sneaker_fields())
        assert registry.token_metadata(1) == uri.decode()
