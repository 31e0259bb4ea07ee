# schemas.py
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    ORDER_CONFIRMATION = "OrderConfirmation"
    EXPORT_DOCUMENT = "ExportDocument"


class DocumentDescriptor(BaseModel):
    name: str
    url: str = ""
    type: DocumentType = DocumentType.EXPORT_DOCUMENT


class ShipmentView(BaseModel):
    record: dict[str, Any]
    category: str = Field(..., description="Status category (PORT, STACK, PLANNED, EN ROUTE, OTHER)")
    priority: int = Field(..., ge=1, le=5)
    color: str
    upcoming: bool = False


class ShipmentListResponse(BaseModel):
    scope: str
    query: str = ""
    total: int
    shipments: list[ShipmentView]


class DocumentListResponse(BaseModel):
    key: str
    documents: list[DocumentDescriptor]


class IdentityResponse(BaseModel):
    identity: str
    scope: str
