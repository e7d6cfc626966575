from contextlib import asynccontextmanager
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

import checkout
import database
import storage
from auth import get_claims, get_current_user_id, is_admin, require_admin
from config import settings
from database import utcnow
from errors import AuthorizationError, NotFoundError, ValidationError, register_error_handlers
from logging_config import configure_logging
from money import format_cents, lower_bound_cents, to_cents, upper_bound_cents
from schemas import (
    AdminStats,
    CheckoutRequest,
    CheckoutResponse,
    DiscountCreate,
    DiscountOut,
    DiscountUpdate,
    OrderCreate,
    OrderOut,
    OrderStatusUpdate,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    QuoteOut,
    QuoteRequest,
    UserOut,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    try:
        database.ensure_indexes()
    except PyMongoError as e:
        logger.warning("index_setup_failed", error=str(e)[:200])
    yield


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Storefront API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
        "database_name": settings.database_name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ----------------------- Auth -----------------------
@app.post("/api/auth/callback", response_model=UserOut)
def auth_callback(claims: dict = Depends(get_claims)):
    user = storage.upsert_user(
        str(claims["sub"]),
        email=claims.get("email"),
        first_name=claims.get("first_name"),
        last_name=claims.get("last_name"),
        profile_image_url=claims.get("profile_image_url"),
    )
    logger.info("user_upserted", user_id=user["_id"])
    return UserOut.from_doc(user)


@app.get("/api/auth/user", response_model=UserOut)
def current_user(user_id: str = Depends(get_current_user_id)):
    user = storage.get_user(user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserOut.from_doc(user)


# ----------------------- Products -----------------------
@app.get("/api/products", response_model=List[ProductOut])
def list_products(
    category: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice"),
    search: Optional[str] = None,
):
    try:
        min_cents = lower_bound_cents(min_price) if min_price is not None else None
        max_cents = upper_bound_cents(max_price) if max_price is not None else None
    except ValueError as e:
        raise ValidationError("Invalid price filter", [{"loc": ["query"], "msg": str(e)}])
    docs = storage.get_products(category=category, min_price_cents=min_cents, max_price_cents=max_cents, search=search)
    return [ProductOut.from_doc(d) for d in docs]


@app.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str):
    product = storage.get_product(product_id)
    if not product:
        raise NotFoundError("Product not found")
    return ProductOut.from_doc(product)


@app.post("/api/products", response_model=ProductOut, status_code=201, dependencies=[Depends(require_admin)])
def create_product(body: ProductCreate):
    return ProductOut.from_doc(storage.create_product(body))


@app.put("/api/products/{product_id}", response_model=ProductOut, dependencies=[Depends(require_admin)])
def update_product(product_id: str, body: ProductUpdate):
    changes = body.changes()
    if not changes:
        raise ValidationError("Invalid product data", [{"loc": ["body"], "msg": "No fields to update"}])
    product = storage.update_product(product_id, changes)
    if not product:
        raise NotFoundError("Product not found")
    return ProductOut.from_doc(product)


@app.delete("/api/products/{product_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_product(product_id: str):
    if not storage.delete_product(product_id):
        raise NotFoundError("Product not found")
    return Response(status_code=204)


# ----------------------- Orders -----------------------
@app.get("/api/orders", response_model=List[OrderOut])
def list_orders(user_id: str = Depends(get_current_user_id)):
    owner = None if is_admin(user_id) else user_id
    return [OrderOut.from_doc(o) for o in storage.get_orders(owner)]


@app.get("/api/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, user_id: str = Depends(get_current_user_id)):
    order = storage.get_order(order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order["user_id"] != user_id and not is_admin(user_id):
        raise AuthorizationError("Access denied")
    return OrderOut.from_doc(order)


@app.post("/api/orders", response_model=OrderOut, status_code=201)
def create_order(body: OrderCreate, user_id: str = Depends(get_current_user_id)):
    items = [
        {
            "product_id": i.product_id,
            "quantity": i.quantity,
            "size": i.size,
            "color": i.color,
            "price_cents": to_cents(i.price),
        }
        for i in body.items
    ]
    total = checkout.sum_line_items((i["price_cents"], i["quantity"]) for i in items)
    order = storage.create_order(
        user_id=user_id,
        items=items,
        total_cents=total,
        shipping_address=body.shipping_address.model_dump(),
        status=storage.NEW_ORDER_STATUS,
    )
    return OrderOut.from_doc(order)


@app.put("/api/orders/{order_id}/status", response_model=OrderOut, dependencies=[Depends(require_admin)])
def update_order_status(order_id: str, body: OrderStatusUpdate):
    order = storage.update_order_status(order_id, body.status)
    if not order:
        raise NotFoundError("Order not found")
    logger.info("order_status_updated", order_id=order_id, status=body.status)
    return OrderOut.from_doc(order)


# ----------------------- Discounts -----------------------
@app.get("/api/discounts", response_model=List[DiscountOut], dependencies=[Depends(require_admin)])
def list_discounts():
    return [DiscountOut.from_doc(d) for d in storage.get_discounts()]


@app.get("/api/discounts/{code}", response_model=DiscountOut, dependencies=[Depends(get_current_user_id)])
def get_discount(code: str):
    discount = storage.get_discount_by_code(code)
    if not discount:
        raise NotFoundError("Discount code not found")
    if not checkout.discount_is_valid(discount):
        raise ValidationError("Discount code has expired")
    return DiscountOut.from_doc(discount)


@app.post("/api/discounts", response_model=DiscountOut, status_code=201, dependencies=[Depends(require_admin)])
def create_discount(body: DiscountCreate):
    return DiscountOut.from_doc(storage.create_discount(body))


@app.put("/api/discounts/{discount_id}", response_model=DiscountOut, dependencies=[Depends(require_admin)])
def update_discount(discount_id: str, body: DiscountUpdate):
    changes = body.changes()
    if not changes:
        raise ValidationError("Invalid discount data", [{"loc": ["body"], "msg": "No fields to update"}])
    discount = storage.update_discount(discount_id, changes)
    if not discount:
        raise NotFoundError("Discount not found")
    return DiscountOut.from_doc(discount)


@app.delete("/api/discounts/{discount_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_discount(discount_id: str):
    if not storage.delete_discount(discount_id):
        raise NotFoundError("Discount not found")
    return Response(status_code=204)


# ----------------------- Checkout -----------------------
@app.post("/api/checkout", response_model=CheckoutResponse, status_code=201)
def place_order(body: CheckoutRequest, user_id: str = Depends(get_current_user_id)):
    order = checkout.place_order(user_id, body)
    return CheckoutResponse(message="Order placed successfully", order=OrderOut.from_doc(order))


@app.post("/api/checkout/quote", response_model=QuoteOut, dependencies=[Depends(get_current_user_id)])
def quote(body: QuoteRequest):
    return QuoteOut(**checkout.quote(body.items, body.discount_code, settings.tax_rate))


# ----------------------- Admin -----------------------
@app.get("/api/admin/stats", response_model=AdminStats, dependencies=[Depends(require_admin)])
def admin_stats():
    s = storage.stats()
    return AdminStats(users=s["users"], products=s["products"], orders=s["orders"],
                      revenue=format_cents(s["revenue_cents"]))


# ----------------------- Seed Demo Data -----------------------
DEMO_PRODUCTS = [
    {
        "name": "Classic Oxford Shirt",
        "description": "Crisp cotton oxford with a button-down collar.",
        "price": "49.00",
        "category": "Shirts",
        "images": ["https://images.unsplash.com/photo-1596755094514-f87e34085b2c"],
        "sizes": ["S", "M", "L", "XL"],
        "colors": ["White", "Blue"],
        "stock": 40,
    },
    {
        "name": "Slim Fit Chinos",
        "description": "Stretch twill chinos for everyday wear.",
        "price": "59.50",
        "category": "Pants",
        "images": ["https://images.unsplash.com/photo-1473966968600-fa801b869a1a"],
        "sizes": ["30", "32", "34", "36"],
        "colors": ["Khaki", "Navy", "Olive"],
        "stock": 25,
    },
    {
        "name": "Merino Crew Sweater",
        "description": "Lightweight merino wool knit.",
        "price": "89.00",
        "category": "Knitwear",
        "images": ["https://images.unsplash.com/photo-1434389677669-e08b4cac3105"],
        "sizes": ["S", "M", "L"],
        "colors": ["Charcoal", "Oatmeal"],
        "stock": 15,
    },
    {
        "name": "Leather Low-Top Sneakers",
        "description": "Minimal leather sneakers with a rubber cupsole.",
        "price": "120.00",
        "category": "Shoes",
        "images": ["https://images.unsplash.com/photo-1525966222134-fcfa99b8ae77"],
        "sizes": ["8", "9", "10", "11"],
        "colors": ["White"],
        "stock": 20,
    },
    {
        "name": "Canvas Tote",
        "description": "Heavyweight canvas tote with inner pocket.",
        "price": "25.00",
        "category": "Accessories",
        "images": ["https://images.unsplash.com/photo-1544816155-12df9643f363"],
        "sizes": [],
        "colors": ["Natural", "Black"],
        "stock": 60,
    },
]

DEMO_ADMIN_ID = "admin"


@app.post("/seed")
def seed():
    if database.db["product"].count_documents({}) > 0:
        return {"seeded": False, "message": "Products already exist"}
    for p in DEMO_PRODUCTS:
        storage.create_product(ProductCreate(**p))
    if not storage.get_discount_by_code("SAVE20"):
        storage.create_discount(DiscountCreate(code="SAVE20", percentage=Decimal("20"),
                                               valid_until=utcnow() + timedelta(days=30)))
    # create admin user if none
    if database.db["user"].count_documents({"is_admin": True}) == 0:
        storage.upsert_user(DEMO_ADMIN_ID, email="admin@shop.com", first_name="Admin")
        storage.set_admin(DEMO_ADMIN_ID)
    return {"seeded": True, "products": database.db["product"].count_documents({})}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
