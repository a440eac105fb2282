"""Pydantic schemas for account registration, domains and quota."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AccountRegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8, max_length=255)
    domain: Optional[str] = Field(default=None, max_length=120)


class AccountResponse(BaseModel):
    id: str
    name: str
    email: str
    domain: Optional[str]
    tier: str
    content_count: int
    created_at: datetime


class DomainCheckRequest(BaseModel):
    domain: str = Field(min_length=1, max_length=120)


class DomainCheckResponse(BaseModel):
    available: bool
    domain: str


class QuotaStatusResponse(BaseModel):
    tier: str
    tier_name: str
    content_count: int
    content_limit: int
    remaining: int
    usage_percentage: float
    show_upgrade_prompt: bool
    next_tier: Optional[str] = None


class ReconcileResponse(BaseModel):
    account_id: str
    before: int
    after: int
