"""Tests for entry routing and new-password rules."""

from __future__ import annotations

import pytest

from tms_core.entry import EntryKind, resolve_entry, validate_new_password


@pytest.mark.parametrize(
    "path",
    ["/privacy-policy", "/cancellation-refunds", "/shipping", "/terms-conditions",
     "/about", "/contact", "/products", "/about/"],
)
def test_public_pages(path):
    assert resolve_entry(path).kind is EntryKind.PUBLIC_PAGE


def test_public_page_wins_over_tokens():
    assert resolve_entry("/about", "?access_token=abc").kind is EntryKind.PUBLIC_PAGE


def test_recovery_type():
    entry = resolve_entry("/", "?type=recovery&access_token=abc")
    assert entry.kind is EntryKind.RESET_PASSWORD
    assert entry.access_token == "abc"


def test_access_and_refresh_tokens_mean_reset():
    entry = resolve_entry("/", "access_token=a&refresh_token=r")
    assert entry.kind is EntryKind.RESET_PASSWORD
    assert entry.refresh_token == "r"


def test_lone_access_token_in_fragment_is_confirmation():
    entry = resolve_entry("/", "", "#access_token=abc&token_type=bearer")
    assert entry.kind is EntryKind.EMAIL_CONFIRMATION
    assert entry.access_token == "abc"


def test_plain_path_is_application():
    assert resolve_entry("/dashboard").kind is EntryKind.APPLICATION


def test_strong_password_passes():
    assert validate_new_password("Str0ngPass", "Str0ngPass") == {}


@pytest.mark.parametrize(
    ("password", "fragment"),
    [
        ("Sh0rt", "at least 8"),
        ("ALLUPPER123", "lowercase"),
        ("alllower123", "uppercase"),
        ("NoDigitsHere", "number"),
    ],
)
def test_weak_passwords(password, fragment):
    errors = validate_new_password(password, password)
    assert fragment in errors["password"]


def test_mismatched_confirmation():
    errors = validate_new_password("Str0ngPass", "Str0ngPas")
    assert errors == {"confirm_password": "Passwords do not match"}
