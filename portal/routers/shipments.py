import logging

from fastapi import APIRouter, Depends, HTTPException

from portal.config import get_settings
from portal.dependencies import get_identity, get_registry
from portal.pipeline import SessionRegistry
from portal.schemas import DocumentListResponse, IdentityResponse, ShipmentListResponse
from portal.services.classifier import categorize
from portal.services.scope import scope_label

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Shipments"])


@router.get("/me", response_model=IdentityResponse)
async def whoami(identity: str = Depends(get_identity), registry: SessionRegistry = Depends(get_registry)):
    session = await registry.get(identity)
    return IdentityResponse(identity=identity, scope=scope_label(session.scope))


@router.get("/shipments", response_model=ShipmentListResponse)
async def list_shipments(
    q: str = "",
    identity: str = Depends(get_identity),
    registry: SessionRegistry = Depends(get_registry),
):
    try:
        session = await registry.get(identity)
        settings = get_settings()

        shipments = categorize(
            session.view(q),
            window_days=settings.upcoming_days,
            eta_field=settings.eta_field,
            dayfirst=settings.eta_dayfirst,
        )
        return ShipmentListResponse(
            scope=scope_label(session.scope),
            query=q,
            total=len(shipments),
            shipments=shipments,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[Shipments] Listing failed for {identity}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/shipments/{key:path}/documents", response_model=DocumentListResponse)
async def shipment_documents(
    key: str,
    identity: str = Depends(get_identity),
    registry: SessionRegistry = Depends(get_registry),
):
    try:
        session = await registry.get(identity)

        # Only records inside the caller's scope can be selected
        record = session.find_record(key)
        if record is None:
            raise HTTPException(status_code=404, detail="Shipment Not Found")

        documents = await session.select(record)
        if documents is None:
            raise HTTPException(status_code=409, detail="Superseded by a newer selection")
        return DocumentListResponse(key=key, documents=documents)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[Shipments] Document lookup failed for '{key}': {e}")
        raise HTTPException(status_code=500, detail=str(e))
