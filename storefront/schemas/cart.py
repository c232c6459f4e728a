# storefront/schemas/cart.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any


class FreightOption(BaseModel):
    """One carrier offer from the supplier freight API"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    logistic_name: Optional[str] = Field(None, alias="logisticName")
    logistic_price: float = Field(0.0, alias="logisticPrice")
    total_postage_fee: Optional[float] = Field(None, alias="totalPostageFee")
    logistic_aging: Optional[str] = Field(None, alias="logisticAging")


class FreightQuoteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[int] = None
    result: Optional[bool] = None
    message: Optional[str] = None
    data: List[FreightOption] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def null_data_as_empty(cls, value):
        # Error responses carry "data": null
        return value if value is not None else []

    def cheapest(self) -> Optional[FreightOption]:
        if not self.data:
            return None
        return min(self.data, key=lambda option: option.logistic_price)


class ShippingLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider_id: Optional[int] = None
    logistic_name: Optional[str] = None
    logistic_price: float
    total_postage_fee: Optional[float] = None
    aging: Optional[str] = None


class ShippingFeesResponse(BaseModel):
    cart_id: int
    total: float
    lines: List[ShippingLineOut]


class DiscountCandidateOut(BaseModel):
    amount: float
    label: str
    source: str
    breakdown: List[Dict[str, Any]] = Field(default_factory=list)
