import re
from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Any, List
from grepud_client.models import OrderStatus


class RegistrationAttempt(BaseModel):
    username: str = Field(..., min_length=1, examples=["budi"])
    email: str = Field(..., min_length=1, examples=["budi@mail.com"])
    password: str = Field(..., min_length=1)


class VerificationAttempt(BaseModel):
    email: str = Field(..., min_length=1, examples=["budi@mail.com"])
    code: str = Field(..., min_length=1, max_length=6, examples=["555181"])

    @field_validator("code", mode="before")
    @classmethod
    def digits_only(cls, v: Any) -> Any:
        if isinstance(v, str):
            return re.sub(r"\D", "", v)
        return v


class LoginCredentials(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    token: str = Field(..., min_length=1, validation_alias=AliasChoices("token", "access_token"))


class OrderCreate(BaseModel):
    item: str = Field(..., min_length=1, examples=["Nasi Goreng"])
    price: int = Field(..., ge=0, examples=[25000])


class Order(BaseModel):
    id: str
    item: str
    price: int = Field(..., ge=0)
    status: OrderStatus

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


class OrderList(BaseModel):
    orders: List[Order]

    @field_validator("orders", mode="before")
    @classmethod
    def null_is_empty(cls, v: Any) -> Any:
        if v is None:
            return []
        return v


class PaymentRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)
