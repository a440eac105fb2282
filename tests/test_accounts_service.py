from __future__ import annotations

import uuid

import pytest

from storysite.accounts.service import (
    InvalidCredentialsError,
    _domain_seed,
    authenticate_account,
    ensure_account_domain,
    register_account,
)
from storysite.core.errors import ConflictError, ValidationError
from storysite.core.metrics import render_prometheus_metrics, reset_metrics_for_tests
from storysite.storage.models import Account


def test_register_prefers_requested_domain_then_name(session) -> None:
    preferred = register_account(
        session,
        name="Anna",
        email="anna@example.com",
        password="password-123",
        preferred_domain="The Smiths",
    )
    by_name = register_account(session, name="The Smiths", email="other@example.com", password="password-123")

    assert preferred.domain == "the-smiths.evertory.com"
    assert by_name.domain == "the-smiths-1.evertory.com"
    assert preferred.tier == "free"
    assert preferred.content_count == 0


def test_domain_seed_falls_back_to_email_local_part() -> None:
    assert _domain_seed(None, "  ", "grandpa.joe@example.com") == "grandpa.joe"
    assert _domain_seed("  ", "Name", "x@example.com") == "Name"


def test_register_normalizes_email_and_rejects_duplicates(session) -> None:
    account = register_account(session, name="Joe", email="Joe@Example.com", password="password-123")
    assert account.email == "joe@example.com"

    with pytest.raises(ConflictError) as exc_info:
        register_account(session, name="Joe Again", email="JOE@example.com", password="password-123")
    assert exc_info.value.code == "account_exists"


def test_register_requires_fields(session) -> None:
    with pytest.raises(ValidationError):
        register_account(session, name=" ", email="a@example.com", password="password-123")


def test_authenticate_account(session) -> None:
    register_account(session, name="Maria", email="maria@example.com", password="password-123")

    account = authenticate_account(session, email="MARIA@example.com", password="password-123")
    assert account.email == "maria@example.com"

    with pytest.raises(InvalidCredentialsError):
        authenticate_account(session, email="maria@example.com", password="wrong-password")
    with pytest.raises(InvalidCredentialsError):
        authenticate_account(session, email="nobody@example.com", password="password-123")


def test_ensure_account_domain_assigns_once(session, make_account) -> None:
    account = make_account(name="Late Starter", domain=None)

    first = ensure_account_domain(session, account.id)
    second = ensure_account_domain(session, account.id, preferred_domain="something else")

    assert first == "late-starter.evertory.com"
    assert second == first


def test_register_reports_email_race_as_existing_account(session, commit_before_flush) -> None:
    reset_metrics_for_tests()
    commit_before_flush(
        lambda: [
            Account(
                id=str(uuid.uuid4()),
                name="Joe Elsewhere",
                email="joe2@example.com",
                password_hash="x",
                domain="elsewhere.evertory.com",
            )
        ]
    )

    with pytest.raises(ConflictError) as exc_info:
        register_account(session, name="Joe2", email="joe2@example.com", password="password-123")

    assert exc_info.value.code == "account_exists"
    rendered = render_prometheus_metrics(app_name="storysite", app_version="test", env="test")
    assert 'storysite_identifier_conflict_total{scope="domain"}' not in rendered
