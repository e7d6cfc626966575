"""
Storage adapter: CRUD over the user, product, order and discount collections.

Lookups by a malformed id behave like lookups of a missing record and
return None.
"""
import re
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import database
from database import create_document, get_documents, utcnow
from errors import ValidationError
from money import to_basis_points, to_cents
from schemas import DiscountCreate, ProductCreate

logger = structlog.get_logger(__name__)


def _oid(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _find_by_id(collection: str, doc_id: str) -> Optional[dict]:
    oid = _oid(doc_id)
    if oid is None:
        return None
    return database.db[collection].find_one({"_id": oid})


def _update_by_id(collection: str, doc_id: str, update: Dict[str, Any]) -> Optional[dict]:
    oid = _oid(doc_id)
    if oid is None:
        return None
    update["updated_at"] = utcnow()
    return database.db[collection].find_one_and_update(
        {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
    )


# ----------------------- Users -----------------------
def get_user(user_id: str) -> Optional[dict]:
    return database.db["user"].find_one({"_id": user_id})


def upsert_user(user_id: str, email: Optional[str] = None, first_name: Optional[str] = None,
                last_name: Optional[str] = None, profile_image_url: Optional[str] = None) -> dict:
    now = utcnow()
    profile = {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "profile_image_url": profile_image_url,
        "updated_at": now,
    }
    return database.db["user"].find_one_and_update(
        {"_id": user_id},
        {"$set": profile, "$setOnInsert": {"is_admin": False, "created_at": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def set_admin(user_id: str, is_admin: bool = True) -> Optional[dict]:
    return database.db["user"].find_one_and_update(
        {"_id": user_id},
        {"$set": {"is_admin": is_admin, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


# ----------------------- Products -----------------------
def _product_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = dict(data)
    if "price" in fields:
        fields["price_cents"] = to_cents(fields.pop("price"))
    return fields


def get_products(category: Optional[str] = None, min_price_cents: Optional[int] = None,
                 max_price_cents: Optional[int] = None, search: Optional[str] = None) -> List[dict]:
    filt: Dict[str, Any] = {"is_active": True}
    if category:
        filt["category"] = category
    if min_price_cents is not None or max_price_cents is not None:
        pr = {}
        if min_price_cents is not None:
            pr["$gte"] = min_price_cents
        if max_price_cents is not None:
            pr["$lte"] = max_price_cents
        filt["price_cents"] = pr
    if search:
        filt["name"] = {"$regex": re.escape(search), "$options": "i"}
    return get_documents("product", filt)


def get_product(product_id: str) -> Optional[dict]:
    return _find_by_id("product", product_id)


def create_product(product: ProductCreate) -> dict:
    new_id = create_document("product", _product_fields(product.model_dump()))
    return get_product(new_id)


def update_product(product_id: str, changes: Dict[str, Any]) -> Optional[dict]:
    return _update_by_id("product", product_id, _product_fields(changes))


def delete_product(product_id: str) -> bool:
    """Soft delete: the record stays, it just stops being listed."""
    found = _update_by_id("product", product_id, {"is_active": False}) is not None
    if found:
        logger.info("product_deactivated", product_id=product_id)
    return found


# ----------------------- Orders -----------------------
# orders start pending; only the admin status route moves them on
NEW_ORDER_STATUS = "pending"


def get_orders(user_id: Optional[str] = None) -> List[dict]:
    filt = {"user_id": user_id} if user_id else {}
    return get_documents("order", filt)


def get_order(order_id: str) -> Optional[dict]:
    return _find_by_id("order", order_id)


def create_order(user_id: str, items: List[Dict[str, Any]], total_cents: int, shipping_address: Dict[str, Any],
                 status: str, discount_code: Optional[str] = None) -> dict:
    doc = {
        "user_id": user_id,
        "items": items,
        "total_cents": total_cents,
        "shipping_address": shipping_address,
        "discount_code": discount_code,
        "status": status,
    }
    new_id = create_document("order", doc)
    return get_order(new_id)


def update_order_status(order_id: str, status: str) -> Optional[dict]:
    return _update_by_id("order", order_id, {"status": status})


# ----------------------- Discounts -----------------------
def get_discounts() -> List[dict]:
    return get_documents("discount", {"is_active": True})


def get_discount_by_code(code: str) -> Optional[dict]:
    return database.db["discount"].find_one({"code": code, "is_active": True})


def create_discount(discount: DiscountCreate) -> dict:
    if database.db["discount"].find_one({"code": discount.code}):
        raise ValidationError("Invalid discount data", [{"loc": ["body", "code"], "msg": "Discount code already exists"}])
    doc = {
        "code": discount.code,
        "percentage_bp": to_basis_points(discount.percentage),
        "valid_until": discount.valid_until,
        "is_active": discount.is_active,
    }
    try:
        new_id = create_document("discount", doc)
    except DuplicateKeyError:
        raise ValidationError("Invalid discount data", [{"loc": ["body", "code"], "msg": "Discount code already exists"}])
    return _find_by_id("discount", new_id)


def update_discount(discount_id: str, changes: Dict[str, Any]) -> Optional[dict]:
    fields = dict(changes)
    if "percentage" in fields:
        fields["percentage_bp"] = to_basis_points(fields.pop("percentage"))
    return _update_by_id("discount", discount_id, fields)


def delete_discount(discount_id: str) -> bool:
    return _update_by_id("discount", discount_id, {"is_active": False}) is not None


# ----------------------- Stats -----------------------
def stats() -> Dict[str, int]:
    revenue = sum(o.get("total_cents", 0) for o in database.db["order"].find({}, {"total_cents": 1}))
    return {
        "users": database.db["user"].count_documents({}),
        "products": database.db["product"].count_documents({"is_active": True}),
        "orders": database.db["order"].count_documents({}),
        "revenue_cents": revenue,
    }
