"""Unit tests for the ownership guard and password hashing."""

import pytest

from wayfarer.exceptions import Forbidden
from wayfarer.roles import Role
from wayfarer.security import ensure_owner_or_role, hash_password, verify_password
from wayfarer.services.token_service import Principal


def test_owner_passes():
    ensure_owner_or_role(Principal(id=1, role=Role.user), owner_id=1)


def test_non_owner_without_minimum_is_forbidden():
    # Even a super admin is not the owner
    with pytest.raises(Forbidden) as exc:
        ensure_owner_or_role(Principal(id=2, role=Role.super_admin), owner_id=1)
    assert exc.value.message == "Unauthorized"


def test_non_owner_with_sufficient_rank_passes():
    ensure_owner_or_role(Principal(id=2, role=Role.admin), owner_id=1, min_role=Role.admin)
    ensure_owner_or_role(Principal(id=3, role=Role.super_admin), owner_id=1, min_role=Role.admin)


def test_non_owner_with_low_rank_is_forbidden():
    with pytest.raises(Forbidden):
        ensure_owner_or_role(Principal(id=2, role=Role.user), owner_id=1, min_role=Role.admin)


def test_password_hash_roundtrip():
    password_hash = hash_password("password123")
    assert password_hash != "password123"
    assert verify_password("password123", password_hash)
    assert not verify_password("wrong-password", password_hash)
    assert not verify_password("password123", None)
