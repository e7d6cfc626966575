"""
Request/response schemas for the storefront API.

Stored documents use snake_case keys and integer cents; everything on the
wire is camelCase with money as decimal strings.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from money import format_basis_points, format_cents

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UpdateCommand(CamelModel):
    """Explicit partial update: unknown keys are rejected and only sent fields apply."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")
    nullable_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nullable = self.nullable_fields
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in nullable:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def _unique(values: List[str]) -> List[str]:
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ----------------------- Users -----------------------
class UserOut(CamelModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "UserOut":
        return cls(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})


# ----------------------- Products -----------------------
class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category: str = Field(..., min_length=1)
    images: List[str] = []
    sizes: List[str] = []
    colors: List[str] = []
    stock: int = Field(0, ge=0)
    is_active: bool = True

    @field_validator("sizes", "colors")
    @classmethod
    def dedupe(cls, v: List[str]) -> List[str]:
        return _unique(v)


class ProductUpdate(UpdateCommand):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("description",)

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("sizes", "colors")
    @classmethod
    def dedupe(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _unique(v) if v is not None else v


class ProductOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: str
    category: str
    images: List[str] = []
    sizes: List[str] = []
    colors: List[str] = []
    stock: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "ProductOut":
        data = {k: v for k, v in doc.items() if k not in ("_id", "price_cents")}
        return cls(id=str(doc["_id"]), price=format_cents(doc.get("price_cents", 0)), **data)


# ----------------------- Orders -----------------------
class ShippingAddress(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)


class CartItem(CamelModel):
    """A cart line as submitted at checkout; any client-side price is ignored."""
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class OrderItemIn(CartItem):
    price: Decimal = Field(..., ge=0, decimal_places=2)


class OrderCreate(CamelModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddress


class OrderStatusUpdate(UpdateCommand):
    status: OrderStatus


class OrderLineOut(CamelModel):
    product_id: str
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    price: str


class OrderOut(CamelModel):
    id: str
    user_id: str
    items: List[OrderLineOut]
    total: str
    shipping_address: ShippingAddress
    discount_code: Optional[str] = None
    status: OrderStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "OrderOut":
        items = [
            OrderLineOut(
                product_id=i["product_id"],
                quantity=i["quantity"],
                size=i.get("size"),
                color=i.get("color"),
                price=format_cents(i["price_cents"]),
            )
            for i in doc.get("items", [])
        ]
        return cls(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            items=items,
            total=format_cents(doc["total_cents"]),
            shipping_address=doc["shipping_address"],
            discount_code=doc.get("discount_code"),
            status=doc["status"],
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


# ----------------------- Checkout -----------------------
class QuoteRequest(CamelModel):
    items: List[CartItem] = Field(..., min_length=1)
    discount_code: Optional[str] = None


class CheckoutRequest(QuoteRequest):
    shipping_address: ShippingAddress


class CheckoutResponse(CamelModel):
    message: str
    order: OrderOut


class QuoteOut(CamelModel):
    subtotal: str
    discount: str
    total: str
    tax: str
    grand_total: str
    discount_applied: bool


# ----------------------- Discounts -----------------------
class DiscountCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=64)
    percentage: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    valid_until: datetime
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("code cannot be blank")
        return v

    @field_validator("valid_until")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class DiscountUpdate(UpdateCommand):
    percentage: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("valid_until")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v) if v is not None else v


class DiscountOut(CamelModel):
    id: str
    code: str
    percentage: str
    valid_until: datetime
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "DiscountOut":
        return cls(
            id=str(doc["_id"]),
            code=doc["code"],
            percentage=format_basis_points(doc["percentage_bp"]),
            valid_until=_as_utc(doc["valid_until"]),
            is_active=doc.get("is_active", True),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


# ----------------------- Admin -----------------------
class AdminStats(CamelModel):
    users: int
    products: int
    orders: int
    revenue: str
