from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository
from marketplace.services.vendor_lifecycle import VendorLifecycleController

from .dependencies import require_admin
from .serializers import lifecycle_json

router = APIRouter(prefix="/admin/vendors", tags=["admin"], dependencies=[Depends(require_admin)])
lifecycle = VendorLifecycleController(SQLAccountRepository(), SQLVendorApplicationRepository())


class SuspendRequest(BaseModel):
    acknowledged_order_ids: List[int] = []


@router.post("/{application_id}/approve")
def approve(application_id: int):
    return lifecycle_json(lifecycle.approve(application_id))


@router.post("/{application_id}/reject")
def reject(application_id: int):
    return lifecycle_json(lifecycle.reject(application_id))


@router.get("/{application_id}/suspension")
def suspension_preview(application_id: int):
    """Orders the admin must acknowledge before suspending."""
    return lifecycle_json(lifecycle.preview_suspension(application_id))


@router.post("/{application_id}/suspend")
def suspend(application_id: int, payload: SuspendRequest):
    return lifecycle_json(lifecycle.suspend(application_id, payload.acknowledged_order_ids))
