"""
Receipt Scan Models

Schemas for the AI receipt scanning endpoint.

DESIGN DECISION: Every extracted field except the item name is optional.
The scanner is a remote AI service; a partially read receipt is still
useful to the user, so absent totals never fail validation.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from budgetbot.models.classification import ClassifiedError


ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic"}


class ReceiptScanRequest(BaseModel):
    """An encoded receipt image ready to upload."""
    model_config = ConfigDict(str_strip_whitespace=True)

    image_b64: str = Field(..., min_length=1)
    mime_type: str = "image/jpeg"

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        if v.lower() not in ALLOWED_MIME_TYPES:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {sorted(ALLOWED_MIME_TYPES)}")
        return v.lower()

    def to_body(self) -> dict:
        return {"image": f"data:{self.mime_type};base64,{self.image_b64}"}


class ReceiptItem(BaseModel):
    """One line read off a receipt."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    price_per_unit: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("price_per_unit", "pricePerUnit", "price"),
    )
    total_price: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("total_price", "totalPrice", "total"),
    )

    @field_validator('quantity', mode='before')
    @classmethod
    def default_quantity(cls, v: Any) -> Any:
        return Decimal("1") if v is None else v


class ScannedReceipt(BaseModel):
    """Receipt header fields plus its items."""
    model_config = ConfigDict(str_strip_whitespace=True)

    merchant: Optional[str] = None
    total: Optional[Decimal] = None
    currency: Optional[str] = None
    date: Optional[str] = None
    items: list[ReceiptItem] = Field(default_factory=list)


class ReceiptScanOutcome(BaseModel):
    """
    Result of one scan, including retries.

    Exactly one of `receipt` and `error` is set.
    """

    receipt: Optional[ScannedReceipt] = None
    error: Optional[ClassifiedError] = None
    message: Optional[str] = None
    attempts: int = Field(default=0, ge=0)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def items(self) -> list[ReceiptItem]:
        return self.receipt.items if self.receipt else []
