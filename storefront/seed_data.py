"""Demo catalog, accounts and reviews loaded into an empty database."""
import json
import logging

from sqlalchemy.orm import Session

from storefront.config import SEED_API_KEY
from storefront.models import Product, Review, User
from storefront.services.api_key_service import ApiKeyService
from storefront.services.user_service import hash_password

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "demo123"

DEMO_USERS = [
    {"email": "demo@example.com", "name": "Demo User", "role": "ADMIN"},
    {"email": "customer1@example.com", "name": "Priya Sharma", "role": "USER"},
    {"email": "customer2@example.com", "name": "Rahul Verma", "role": "USER"},
    {"email": "customer3@example.com", "name": "Anita Patel", "role": "USER"},
]

DEMO_PRODUCTS = [
    {
        "id": "silk-kurta-1",
        "name": "Royal Blue Silk Kurta",
        "description": "Elegant royal blue silk kurta for festive occasions with intricate embroidery",
        "price": 2999,
        "category": "men",
        "subcategory": "attire",
        "images": ["/royal-blue-silk-kurta-for-men.png", "/royal-blue-silk-kurta.png"],
        "sizes": ["S", "M", "L", "XL", "XXL"],
    },
    {
        "id": "sherwani-1",
        "name": "Burgundy Silk Sherwani",
        "description": "Premium silk sherwani with golden embroidery for weddings",
        "price": 7999,
        "category": "men",
        "subcategory": "attire",
        "images": ["/burgundy-silk-sherwani.png"],
        "sizes": ["38", "40", "42", "44", "46"],
    },
    {
        "id": "banarasi-saree-1",
        "name": "Banarasi Silk Saree",
        "description": "Handwoven Banarasi silk saree with a golden zari border",
        "price": 8999,
        "category": "women",
        "subcategory": "attire",
        "images": ["/banarasi-silk-saree.png"],
        "sizes": ["Free Size"],
        "colors": ["Red", "Maroon"],
    },
    {
        "id": "cotton-kurti-1",
        "name": "Printed Cotton Kurti",
        "description": "Breathable cotton kurti for daily wear",
        "price": 799,
        "category": "women",
        "subcategory": "attire",
        "images": ["/printed-cotton-kurti.png"],
        "sizes": ["S", "M", "L", "XL"],
    },
    {
        "id": "girls-lehenga-1",
        "name": "Pink Embroidered Lehenga",
        "description": "Festive lehenga choli for girls with mirror work",
        "price": 2499,
        "category": "children",
        "subcategory": "attire",
        "images": ["/pink-girls-lehenga.png"],
        "sizes": ["2-3Y", "4-5Y", "6-7Y", "8-9Y"],
    },
    {
        "id": "kids-tshirt-1",
        "name": "Graphic Cotton T-Shirt",
        "description": "Colorful printed t-shirt for kids",
        "price": 399,
        "category": "children",
        "subcategory": "attire",
        "images": ["/kids-graphic-tshirt.png"],
        "sizes": ["4-5Y", "6-7Y", "8-9Y"],
    },
    {
        "id": "men-ethnic-mojari-1",
        "name": "Handcrafted Mojari",
        "description": "Traditional leather mojari with embroidery",
        "price": 1299,
        "category": "men",
        "subcategory": "footwear",
        "images": ["/handcrafted-mojari.png"],
        "sizes": ["7", "8", "9", "10"],
    },
    {
        "id": "leather-handbag-1",
        "name": "Embroidered Leather Handbag",
        "description": "Spacious handbag with ethnic embroidery",
        "price": 1899,
        "category": "women",
        "subcategory": "accessories",
        "images": ["/embroidered-leather-handbag.png"],
        "sizes": [],
    },
]

DEMO_REVIEWS = [
    ("customer1@example.com", "silk-kurta-1", 5, "Excellent quality silk kurta! Perfect fit and great fabric."),
    ("customer2@example.com", "silk-kurta-1", 4, "Beautiful blue color and comfortable to wear."),
    ("customer1@example.com", "sherwani-1", 5, "Stunning sherwani for my wedding."),
    ("customer3@example.com", "banarasi-saree-1", 5, "Absolutely stunning saree, the border is gorgeous."),
    ("customer2@example.com", "cotton-kurti-1", 5, "Very comfortable for daily wear."),
    ("customer3@example.com", "girls-lehenga-1", 5, "My daughter loves it."),
    ("customer1@example.com", "leather-handbag-1", 4, "Good quality and spacious."),
]


def seed_demo_data(db: Session) -> None:
    """Seed users, products and reviews if the catalog is empty."""
    if db.query(Product).count() > 0:
        return

    password = hash_password(DEMO_PASSWORD)
    users = {}
    for data in DEMO_USERS:
        existing = db.query(User).filter(User.email == data["email"]).first()
        if existing is not None:
            users[data["email"]] = existing
            continue
        user = User(
            email=data["email"],
            name=data["name"],
            role=data["role"],
            password=password,
            is_verified=True
        )
        db.add(user)
        users[data["email"]] = user

    for data in DEMO_PRODUCTS:
        db.add(Product(
            id=data["id"],
            name=data["name"],
            description=data["description"],
            price=data["price"],
            base_price=data["price"],
            category=data["category"],
            subcategory=data["subcategory"],
            image=data["images"][0],
            images=json.dumps(data["images"]),
            sizes=json.dumps(data["sizes"]),
            colors=json.dumps(data.get("colors", [])),
            stock=50
        ))
    db.flush()

    for email, product_id, rating, comment in DEMO_REVIEWS:
        db.add(Review(
            user_id=users[email].id,
            product_id=product_id,
            rating=rating,
            comment=comment
        ))
    db.commit()
    logger.info("Seeded database with demo catalog", extra={
        "products": len(DEMO_PRODUCTS),
        "users": len(DEMO_USERS),
        "reviews": len(DEMO_REVIEWS)
    })

    if SEED_API_KEY:
        ApiKeyService().ensure(db, SEED_API_KEY, "Seeded integration key")
        logger.info("Seeded API key from SEED_API_KEY")
