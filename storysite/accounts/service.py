"""Account registration, authentication and domain assignment."""

from __future__ import annotations

from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storysite.core.errors import ConflictError, NotFoundError, ValidationError
from storysite.core.logger import get_logger
from storysite.identifiers.allocator import IdentifierScope, allocate_domain, persist_with_identifier
from storysite.storage.models import Account
from storysite.storage.security import hash_password, needs_rehash, verify_password


logger = get_logger("storysite.accounts")


class InvalidCredentialsError(ValidationError):
    code = "invalid_credentials"
    status_code = 401


def _domain_seed(preferred_domain: Optional[str], name: Optional[str], email: str) -> str:
    for candidate in (preferred_domain, name):
        if candidate and candidate.strip():
            return candidate
    return email.split("@", 1)[0]


def get_account(session: Session, account_id: str) -> Account:
    account = session.scalar(select(Account).where(Account.id == account_id, Account.is_active.is_(True)))
    if account is None:
        raise NotFoundError("Account not found")
    return account


def register_account(
    session: Session,
    *,
    name: str,
    email: str,
    password: str,
    preferred_domain: Optional[str] = None,
) -> Account:
    if not name.strip() or not email.strip() or not password:
        raise ValidationError("Missing required fields")

    normalized_email = email.strip().lower()
    if session.scalar(select(Account.id).where(Account.email == normalized_email)) is not None:
        raise ConflictError("Account already exists", code="account_exists")

    password_hash = hash_password(password)
    seed = _domain_seed(preferred_domain, name, normalized_email)

    def build(domain: str) -> Account:
        account = Account(
            id=str(uuid.uuid4()),
            name=name.strip(),
            email=normalized_email,
            password_hash=password_hash,
            domain=domain,
            tier="free",
            content_count=0,
        )
        session.add(account)
        return account

    try:
        account = persist_with_identifier(
            session,
            scope=IdentifierScope.DOMAIN,
            allocate=lambda: allocate_domain(session, seed),
            build=build,
        )
    except IntegrityError as exc:
        logger.warning("account_register_conflict", email=normalized_email)
        raise ConflictError("Account already exists", code="account_exists") from exc
    logger.info("account_registered", account_id=account.id, domain=account.domain)
    return account


def authenticate_account(session: Session, *, email: str, password: str) -> Account:
    normalized_email = email.strip().lower()
    account = session.scalar(
        select(Account).where(Account.email == normalized_email, Account.is_active.is_(True))
    )
    if account is None or not verify_password(password, account.password_hash):
        raise InvalidCredentialsError("Invalid credentials")

    if needs_rehash(account.password_hash):
        account.password_hash = hash_password(password)
        session.commit()
    return account


def ensure_account_domain(session: Session, account_id: str, preferred_domain: Optional[str] = None) -> str:
    """Return the account's domain, allocating one first if it has none."""

    account = get_account(session, account_id)
    if account.domain:
        return account.domain

    seed = _domain_seed(preferred_domain, account.name, account.email)

    def build(domain: str) -> Account:
        account.domain = domain
        return account

    def allocate() -> str:
        return allocate_domain(session, seed)

    persist_with_identifier(session, scope=IdentifierScope.DOMAIN, allocate=allocate, build=build)
    logger.info("account_domain_assigned", account_id=account.id, domain=account.domain)
    return account.domain
