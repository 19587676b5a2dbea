from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from marketplace.core.config import get_settings
from marketplace.core.rate_limiter import rate_limit_ip
from marketplace.domain.accounts import IdentityAssertion, Role
from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository
from marketplace.services.auth_service import (
    AccountDisabledError,
    AccountExistsError,
    AuthError,
    AuthService,
    InvalidCredentialsError,
    RegistrationError,
)
from marketplace.services.onboarding import OnboardingService

from .dependencies import require_admin
from .serializers import account_json, lifecycle_json

router = APIRouter(prefix="/auth", tags=["auth"])
_accounts = SQLAccountRepository()
_applications = SQLVendorApplicationRepository()
auth_service = AuthService(_accounts, _applications)
onboarding_service = OnboardingService(_accounts, _applications)


class FederatedLogin(BaseModel):
    provider: str
    subject_id: str
    email: str
    display_name: str = ""
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    role_intent: Role = Role.CUSTOMER
    documents: Dict[str, str] = {}


class RegisterRequest(BaseModel):
    first_name: str
    last_name: str = ""
    email: str
    password: str
    username: str = ""


class LoginRequest(BaseModel):
    identifier: str
    password: str


def _rate_limit(request: Request, scope: str) -> None:
    settings = get_settings()
    rate_limit_ip(request, scope, limit=settings.auth_rate_limit, window_seconds=settings.auth_rate_window_seconds)


@router.post("/federated")
def federated_login(payload: FederatedLogin, request: Request):
    """Called once the provider has verified the user; resolves the assertion to one account."""
    _rate_limit(request, "auth:federated")
    if not payload.subject_id.strip() or "@" not in payload.email:
        raise HTTPException(400, "subject_id and a valid email are required")
    assertion = IdentityAssertion(
        provider=payload.provider,
        subject_id=payload.subject_id.strip(),
        email=payload.email.strip(),
        display_name=payload.display_name,
        given_name=payload.given_name,
        family_name=payload.family_name,
    )
    result = onboarding_service.federated_login(assertion, payload.role_intent, payload.documents)
    return {
        "outcome": result.reconciliation.outcome.value,
        "account": account_json(result.reconciliation.account),
        "vendor_application": lifecycle_json(result.lifecycle) if result.lifecycle else None,
    }


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, request: Request):
    _rate_limit(request, "auth:register")
    try:
        result = auth_service.register(
            payload.first_name,
            payload.last_name,
            payload.email,
            payload.password,
            payload.username,
        )
    except RegistrationError as exc:
        raise HTTPException(400, exc.message)
    except AccountExistsError as exc:
        raise HTTPException(409, str(exc))
    return {"outcome": result.outcome.value, "account": account_json(result.account)}


@router.post("/login")
def login(payload: LoginRequest, request: Request):
    _rate_limit(request, "auth:login")
    try:
        account = auth_service.login(payload.identifier, payload.password)
    except InvalidCredentialsError:
        raise HTTPException(401, "Invalid credentials")
    except AccountDisabledError as exc:
        raise HTTPException(403, str(exc))
    return {"account": account_json(account)}


@router.delete("/accounts/{account_id}", dependencies=[Depends(require_admin)])
def delete_account(account_id: int):
    try:
        account = auth_service.delete_account(account_id)
    except AuthError as exc:
        raise HTTPException(404, str(exc))
    return {"account": account_json(account)}
