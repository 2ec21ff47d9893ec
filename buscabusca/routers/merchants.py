"""Merchant registration API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from buscabusca.database import get_db
from buscabusca.dependencies import CurrentUser, get_client_ip, get_current_user
from buscabusca.schemas.auth import MessageResponse
from buscabusca.schemas.merchant import MerchantListResponse, MerchantPayload, MerchantResponse
from buscabusca.services.merchant import get_merchant_service

router = APIRouter(prefix="/registros", tags=["Merchants"])


def _not_found(merchant_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Record {merchant_id} not found")


@router.get("", response_model=MerchantListResponse)
def list_merchants(
    user: CurrentUser = Depends(get_current_user),
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> MerchantListResponse:
    """List all merchant registrations of the current user."""
    merchants = get_merchant_service().list_merchants(db, user.user_id, ip=ip)
    return MerchantListResponse(
        items=[MerchantResponse.model_validate(m) for m in merchants],
        total=len(merchants),
    )


@router.post("", response_model=MerchantResponse, status_code=201)
def create_merchant(
    body: MerchantPayload,
    user: CurrentUser = Depends(get_current_user),
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> MerchantResponse:
    """Create a merchant registration owned by the current user."""
    service = get_merchant_service()
    data = body.model_dump(exclude_unset=True)
    missing = service.check_required(data, user.user_id, ip=ip)
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required field: {missing}")

    merchant = service.create_merchant(db, user.user_id, data, ip=ip)
    return MerchantResponse.model_validate(merchant)


@router.get("/{merchant_id}", response_model=MerchantResponse)
def get_merchant(
    merchant_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MerchantResponse:
    merchant = get_merchant_service().get_merchant(db, merchant_id, user.user_id)
    if not merchant:
        raise _not_found(merchant_id)
    return MerchantResponse.model_validate(merchant)


@router.put("/{merchant_id}", response_model=MerchantResponse)
def update_merchant(
    merchant_id: int,
    body: MerchantPayload,
    user: CurrentUser = Depends(get_current_user),
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> MerchantResponse:
    """Update the fields present in the body."""
    service = get_merchant_service()
    data = body.model_dump(exclude_unset=True)
    missing = service.check_required(data, user.user_id, partial=True, ip=ip)
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required field: {missing}")

    merchant = service.update_merchant(db, merchant_id, user.user_id, data, ip=ip)
    if not merchant:
        raise _not_found(merchant_id)
    return MerchantResponse.model_validate(merchant)


@router.delete("/{merchant_id}", response_model=MessageResponse)
def delete_merchant(
    merchant_id: int,
    user: CurrentUser = Depends(get_current_user),
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> MessageResponse:
    if not get_merchant_service().delete_merchant(db, merchant_id, user.user_id, ip=ip):
        raise _not_found(merchant_id)
    return MessageResponse(message="Record deleted")
