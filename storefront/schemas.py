"""Pydantic request schemas for the inventory and order endpoints."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storefront.exceptions import ValidationFailureError
from storefront.models import OrderStatus


class ProductRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    product_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: str
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    qty: int
    created: Optional[datetime] = None
    last_updated: Optional[datetime] = None


class UpdateProductRequest(ProductRequest):
    product_id: str = Field(min_length=1, max_length=64)


class OrderLineRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    product_id: str
    qty: int = Field(gt=0)


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    email: str = Field(min_length=3, max_length=128)
    order_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    products: List[OrderLineRequest] = Field(default_factory=list)


class UpdateOrderRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    order_id: str
    order_status: OrderStatus


def parse_payload(schema: Type[BaseModel], payload: Any) -> Dict[str, Any]:
    """
    Validate a JSON payload against ``schema``.

    Returns:
        dict of the validated fields (unset optional fields omitted)

    Raises:
        ValidationFailureError: payload missing or invalid
    """
    if not isinstance(payload, dict):
        raise ValidationFailureError('Request body must be a JSON object')

    try:
        model = schema.model_validate(payload)
    except ValidationError as e:
        errors = [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in e.errors()
        ]
        raise ValidationFailureError('Invalid request data', errors=errors) from e

    return model.model_dump(exclude_none=True)
