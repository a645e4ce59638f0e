"""
SneakerChain Access Collaborator Tests

Tests for RoleBook roles, the pause flag and pluggable authorities.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from conftest import ADMIN, ALICE, BOB, CAROL, sneaker_fields
from sneakerchain.access import AdminAuthority, AlwaysOpen, PauseGate, Role, RoleBook
from sneakerchain.errors import InvalidDestination, SystemPaused, Unauthorized, ValidationError
from sneakerchain.hardening import ZERO_ADDRESS
from sneakerchain.ownership import SneakerOwnership


class TestRoleBook:
    """Tests for role assignment."""

    def test_owner_is_admin(self, role_book):
        assert role_book.has_admin_role(ADMIN)
        assert role_book.roles_of(ADMIN) == frozenset({Role.OWNER})

    def test_admin_and_operator(self):
        book = RoleBook(owner=ADMIN, admin=ALICE, operator=BOB)
        assert book.has_admin_role(ALICE)
        assert not book.has_admin_role(BOB)
        assert book.holder(Role.OPERATOR) == BOB

    def test_unset_role_holder(self, role_book):
        assert role_book.holder(Role.ADMIN) == ZERO_ADDRESS

    def test_owner_assigns_roles(self, role_book):
        role_book.set_role(ADMIN, Role.ADMIN, ALICE)
        assert role_book.has_admin_role(ALICE)

    def test_non_owner_cannot_assign(self, role_book):
        with pytest.raises(Unauthorized):
            role_book.set_role(ALICE, Role.ADMIN, ALICE)

    def test_null_holder_rejected(self, role_book):
        with pytest.raises(InvalidDestination):
            role_book.set_role(ADMIN, Role.ADMIN, ZERO_ADDRESS)
        with pytest.raises(InvalidDestination):
            RoleBook(owner=ZERO_ADDRESS)

    def test_malformed_holder_rejected(self):
        with pytest.raises(ValidationError):
            RoleBook(owner="admin")


class TestPause:
    """Tests for the circuit breaker."""

    def test_any_role_may_pause(self):
        book = RoleBook(owner=ADMIN, operator=BOB)
        book.pause(BOB)
        assert book.is_paused()

    def test_stranger_cannot_pause(self, role_book):
        with pytest.raises(Unauthorized):
            role_book.pause(CAROL)
        assert not role_book.is_paused()

    def test_only_owner_unpauses(self):
        book = RoleBook(owner=ADMIN, admin=ALICE)
        book.pause(ALICE)
        with pytest.raises(Unauthorized):
            book.unpause(ALICE)
        book.unpause(ADMIN)
        assert not book.is_paused()

    def test_round_trip_keeps_pause(self):
        book = RoleBook(owner=ADMIN, admin=ALICE)
        book.pause(ADMIN)
        restored = RoleBook.from_dict(book.to_dict())
        assert restored.is_paused()
        assert restored.holder(Role.ADMIN) == ALICE


class TestPluggableAuthority:
    """Any object with is_paused / has_admin_role can gate the registry."""

    def test_protocols(self, role_book):
        assert isinstance(role_book, PauseGate)
        assert isinstance(role_book, AdminAuthority)
        assert isinstance(AlwaysOpen(), PauseGate)

    def test_separate_pause_gate(self, role_book):
        class Frozen:
            def is_paused(self):
                return True

        registry = SneakerOwnership(role_book, pause_gate=Frozen())
        registry.mint(ADMIN, ALICE, **sneaker_fields())
        assert registry.is_paused()
        with pytest.raises(SystemPaused):
            registry.transfer(ALICE, BOB, 1)

    def test_custom_authority(self):
        class Allowlist:
            def __init__(self, admins):
                self.admins = set(admins)

            def is_paused(self):
                return False

            def has_admin_role(self, caller):
                return caller in self.admins

        registry = SneakerOwnership(Allowlist({BOB}))
        registry.mint(BOB, ALICE, **sneaker_fields())
        with pytest.raises(Unauthorized):
            registry.mint(ALICE, ALICE, **sneaker_fields("T-2"))
