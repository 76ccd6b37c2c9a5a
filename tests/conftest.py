import json
import os

# Configuration is read at import time, so set it before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-signing-secret"
os.environ["OTEL_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["PYROSCOPE_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from storefront.auth import create_access_token
from storefront.database import SessionLocal, engine
from storefront.main import app
from storefront.models import Base, Product, User
from storefront.services.api_key_service import ApiKeyService
from storefront.services.user_service import hash_password

ADDRESS = {"line1": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make_user(email="shopper@example.com", role="USER", name="Shopper", password="secret123"):
        user = User(email=email, name=name, role=role, password=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_product(db):
    def _make_product(product_id="kurta-1", price=500, stock=10, category="men",
                      is_active=True, name=None, **extra):
        product = Product(
            id=product_id,
            name=name or product_id.replace("-", " ").title(),
            description=extra.pop("description", "A fine product"),
            price=price,
            base_price=price,
            category=category,
            subcategory=extra.pop("subcategory", "attire"),
            image="/placeholder.svg",
            images=json.dumps(extra.pop("images", ["/a.png"])),
            sizes=json.dumps(extra.pop("sizes", ["M", "L"])),
            colors=json.dumps(extra.pop("colors", [])),
            stock=stock,
            is_active=is_active,
            **extra
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make_product


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role="ADMIN", name="Admin")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def api_key(db):
    return ApiKeyService().generate(db, "Test client").key


@pytest.fixture
def headers_for():
    return auth_headers
