from datetime import timedelta
from decimal import Decimal

import database
import storage
from auth import create_token
from schemas import DiscountCreate, ProductCreate

ADMIN_ID = "admin-1"
USER_ID = "user-1"
OTHER_USER_ID = "user-2"

SHIPPING = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "address": "12 Analytical Way",
    "city": "London",
    "state": "LDN",
    "zipCode": "N1 9GU",
}


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_token(user_id)}"}


def make_product(name="Tee", price="25.00", category="Shirts", **kw):
    doc = storage.create_product(ProductCreate(name=name, price=Decimal(price), category=category, **kw))
    return str(doc["_id"])


def make_discount(code="SAVE20", percentage="20", valid_for=timedelta(days=1), is_active=True):
    doc = storage.create_discount(DiscountCreate(
        code=code,
        percentage=Decimal(percentage),
        valid_until=database.utcnow() + valid_for,
        is_active=is_active,
    ))
    return str(doc["_id"])
