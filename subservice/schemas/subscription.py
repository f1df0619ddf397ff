from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from subservice.core.months import format_month

# Largest value the INTEGER price column holds.
MAX_PRICE = 2_147_483_647


class SubscriptionPayload(BaseModel):
    """Body of create and full-update requests. Dates are MM-YYYY strings."""

    service_name: str
    price: int = Field(ge=0, le=MAX_PRICE, description="Price in minor currency units")
    user_id: str
    start_date: str = Field(examples=["07-2025"])
    end_date: Optional[str] = Field(default=None, examples=["12-2025"])


class SubscriptionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    service_name: str
    price: int
    start_date: date
    end_date: Optional[date] = None

    @field_serializer("start_date", "end_date")
    def serialize_month(self, value: Optional[date]) -> Optional[str]:
        return format_month(value)


class SubscriptionCreated(BaseModel):
    id: str


class ErrorResponse(BaseModel):
    error: str
    detail: str
