"""
Pydantic schemas for registration request/response validation.

Payment details are a tagged union on `method` so a malformed bag is
rejected at the boundary with a 422 instead of reaching the service.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator

from ticketing.models.enums import PaymentMethod, PaymentStatus


class BankTransferDetails(BaseModel):
    method: Literal["bank_transfer"] = "bank_transfer"
    account_holder_name: str = Field(..., min_length=1, max_length=100)
    bank_name: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=50)


class CashAppDetails(BaseModel):
    method: Literal["cash_app"] = "cash_app"
    cash_app_username: str = Field(..., min_length=1, max_length=100)


class PayPalDetails(BaseModel):
    method: Literal["paypal"] = "paypal"
    email: str = Field(..., min_length=3, max_length=255)


PaymentDetails = Annotated[
    Union[BankTransferDetails, CashAppDetails, PayPalDetails],
    Field(discriminator="method"),
]


class RegistrationCreate(BaseModel):
    event_id: int
    ticket_type: str = Field(..., min_length=1, max_length=50)
    payment_method: PaymentMethod
    user_phone: Optional[str] = Field(None, max_length=30)
    payment_details: Optional[PaymentDetails] = None

    @model_validator(mode="before")
    @classmethod
    def tag_details_with_method(cls, data: Any) -> Any:
        # Clients send the method once; copy it into the details so the union can resolve
        if isinstance(data, dict) and isinstance(data.get("payment_details"), dict):
            details = data["payment_details"]
            if "method" not in details and "payment_method" in data:
                data = {**data, "payment_details": {**details, "method": data["payment_method"]}}
        return data

    @model_validator(mode="after")
    def details_match_method(self) -> "RegistrationCreate":
        if self.payment_details is not None and self.payment_details.method != self.payment_method.value:
            raise ValueError("payment_details do not match payment_method")
        return self


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus
    transaction_id: Optional[str] = Field(None, max_length=100)
    payment_reference: Optional[str] = Field(None, max_length=100)


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    user_name: str
    user_email: str
    user_phone: Optional[str]
    ticket_type_name: str
    ticket_price: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_details: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RegistrationCheckResponse(BaseModel):
    is_registered: bool
    registration: Optional[RegistrationResponse] = None


class RegistrationListResponse(BaseModel):
    registrations: list[RegistrationResponse]
    total: int
    page: int
    limit: int
    pages: int


class RegistrationCancelResponse(BaseModel):
    message: str
    registration_id: int
