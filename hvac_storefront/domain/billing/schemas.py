"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ValidationInfo, field_validator

from ...shared.validators import require_text, validate_email, validate_us_phone, validate_zip_code


class CheckoutRequest(BaseModel):
    """Checkout intent as submitted by the storefront"""

    planId: str
    # Raw JSON value; the pricing resolver accepts only integers and digit strings
    miniSplitHeads: Any = None
    fullName: str
    email: str
    phone: str
    serviceAddress: str
    city: str
    state: str
    zipCode: str
    agreementSignedAt: Optional[datetime] = None  # defaults to now when omitted

    @field_validator("planId", "fullName", "serviceAddress", "city")
    @classmethod
    def validate_required(cls, v: str, info: ValidationInfo) -> str:
        return require_text(v, info.field_name)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(require_text(v, "email"))

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return validate_us_phone(require_text(v, "phone"))

    @field_validator("state")
    @classmethod
    def validate_state(cls, v: str) -> str:
        return require_text(v, "state").upper()

    @field_validator("zipCode")
    @classmethod
    def validate_zip(cls, v: str) -> str:
        return validate_zip_code(require_text(v, "zipCode"))


class CheckoutResponse(BaseModel):
    """Hosted checkout redirect"""

    url: str
