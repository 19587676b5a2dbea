from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.document_store import LocalDocumentStore
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository
from marketplace.services.vendor_lifecycle import VendorLifecycleController

from .serializers import application_json, lifecycle_json

router = APIRouter(prefix="/vendors", tags=["vendors"])
lifecycle = VendorLifecycleController(SQLAccountRepository(), SQLVendorApplicationRepository())
_applications = lifecycle.applications


def _store_uploads(**uploads: Optional[UploadFile]) -> Dict[str, str]:
    """Persist the uploaded documents and return their references by kind."""
    store = LocalDocumentStore()
    refs: Dict[str, str] = {}
    for kind, upload in uploads.items():
        if upload is None or not upload.filename:
            continue
        data = upload.file.read()
        if not data:
            raise HTTPException(400, f"{kind} is empty")
        refs[kind] = store.save(kind, upload.filename, data)
    return refs


@router.post("/{account_id}/apply", status_code=201)
def apply(
    account_id: int,
    store_name: str = Form(""),
    valid_id: Optional[UploadFile] = File(None),
    business_permit: Optional[UploadFile] = File(None),
    proof_image: Optional[UploadFile] = File(None),
):
    docs = _store_uploads(valid_id=valid_id, business_permit=business_permit, proof_image=proof_image)
    result = lifecycle.submit(account_id, docs)
    if store_name.strip() and result.application and result.application.store_name != store_name.strip():
        application = _applications.update(result.application.application_id, store_name=store_name.strip())
        return {**lifecycle_json(result), "application": application_json(application)}
    return lifecycle_json(result)


@router.post("/{account_id}/reapply")
def reapply(
    account_id: int,
    valid_id: Optional[UploadFile] = File(None),
    business_permit: Optional[UploadFile] = File(None),
    proof_image: Optional[UploadFile] = File(None),
):
    docs = _store_uploads(valid_id=valid_id, business_permit=business_permit, proof_image=proof_image)
    return lifecycle_json(lifecycle.reapply(account_id, docs))


@router.post("/{account_id}/resubmit")
def resubmit(
    account_id: int,
    valid_id: Optional[UploadFile] = File(None),
    business_permit: Optional[UploadFile] = File(None),
    proof_image: Optional[UploadFile] = File(None),
):
    docs = _store_uploads(valid_id=valid_id, business_permit=business_permit, proof_image=proof_image)
    return lifecycle_json(lifecycle.resubmit(account_id, docs))


@router.get("/{account_id}/status")
def status(account_id: int):
    application = _applications.find_by_account_id(account_id)
    return {
        "state": lifecycle.current_status(account_id).value,
        "can_accept_orders": lifecycle.can_accept_orders(account_id),
        "application": application_json(application),
    }
