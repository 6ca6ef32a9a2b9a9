from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PlanFeature(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: str
    included: bool
    limit: str | int | None = None


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    description: str = ""
    price: int | float = Field(gt=0)
    currency: str = "USD"
    interval: Literal["month", "year"] = "month"
    product_id: str = Field(min_length=1, alias="productId")
    features: tuple[PlanFeature, ...] = ()
    popular: bool = False
    button_text: str | None = Field(default=None, alias="buttonText")


class PlanRead(Plan):
    formatted_price: str


class CheckoutProduct(BaseModel):
    product_id: str
    slug: str


class CheckoutResponse(BaseModel):
    checkout_id: str
    url: str
