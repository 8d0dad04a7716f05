import logging

from extensions import db
from models import Product
from ledger.errors import NotFound, ValidationError
from ledger.primitives import to_amount, unit_of_work

logger = logging.getLogger(__name__)

DEFAULT_PURCHASE_LIMIT = 2

# Starter catalogue for `flask seed-products`
ROYAL_SERIES = [
    {"name": "ROYAL-1300", "description": "Entry level Royal Hub container store investment.",
     "price": "1300", "dailyIncome": "16.9", "days": 150, "purchaseLimit": 2},
    {"name": "ROYAL-3200", "description": "Standard Royal Hub franchise unit with higher daily returns.",
     "price": "3200", "dailyIncome": "44.8", "days": 180, "purchaseLimit": 2},
    {"name": "ROYAL-6400", "description": "Premium Royal Hub location store investment.",
     "price": "6400", "dailyIncome": "96", "days": 240, "purchaseLimit": 2},
    {"name": "ROYAL-12800", "description": "Regional flagship store share.",
     "price": "12800", "dailyIncome": "217.6", "days": 300, "purchaseLimit": 2},
    {"name": "ROYAL-25600", "description": "Full year high-yield investment plan.",
     "price": "25600", "dailyIncome": "460.8", "days": 365, "purchaseLimit": 2},
    {"name": "ROYAL-38600", "description": "Executive partner level investment.",
     "price": "38600", "dailyIncome": "772", "days": 365, "purchaseLimit": 2},
    {"name": "ROYAL-62600", "description": "Supreme shareholder package.",
     "price": "62600", "dailyIncome": "1377.2", "days": 365, "purchaseLimit": 1},
]


def _positive_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field} must be a whole number")
    if number < 1:
        raise ValidationError(f"{field} must be at least 1")
    return number


def _product_fields(data, partial=False):
    """Validate an admin product payload. totalRevenue from the client is ignored."""
    if not isinstance(data, dict):
        raise ValidationError("Product payload must be an object")

    fields = {}
    required = ("name", "price", "dailyIncome", "days")
    if not partial:
        missing = [key for key in required if data.get(key) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            raise ValidationError("name is required")
        fields["name"] = name
    if "description" in data:
        fields["description"] = data["description"]
    if "image" in data:
        fields["image"] = data["image"]
    if "price" in data:
        fields["price"] = to_amount(data["price"], field="price")
    if "dailyIncome" in data:
        fields["daily_income"] = to_amount(data["dailyIncome"], field="dailyIncome")
    if "days" in data:
        fields["days"] = _positive_int(data["days"], "days")
    if "purchaseLimit" in data and data["purchaseLimit"] is not None:
        fields["purchase_limit"] = _positive_int(data["purchaseLimit"], "purchaseLimit")
    elif not partial:
        fields["purchase_limit"] = DEFAULT_PURCHASE_LIMIT

    return fields


class ProductCatalog:

    @staticmethod
    def list_products():
        return Product.query.order_by(Product.price.asc(), Product.id.asc()).all()

    @staticmethod
    def get_product(product_id):
        try:
            product = db.session.get(Product, int(product_id))
        except (TypeError, ValueError):
            raise NotFound("Product not found")
        if product is None:
            raise NotFound("Product not found")
        return product

    @staticmethod
    def add_product(data):
        fields = _product_fields(data)
        with unit_of_work():
            product = Product(**fields)
            product.compute_total_revenue()
            db.session.add(product)
        logger.info(f"Product {product.id} ({product.name}) added, total revenue {product.total_revenue}")
        return product

    @staticmethod
    def update_product(product_id, data):
        """Admin edit of live terms. Existing investments keep their snapshot."""
        fields = _product_fields(data, partial=True)
        with unit_of_work():
            product = ProductCatalog.get_product(product_id)
            for key, value in fields.items():
                setattr(product, key, value)
            product.compute_total_revenue()
        logger.info(f"Product {product.id} updated: {sorted(fields)}")
        return product

    @staticmethod
    def delete_product(product_id):
        with unit_of_work():
            product = ProductCatalog.get_product(product_id)
            db.session.delete(product)
        logger.info(f"Product {product_id} deleted")

    @staticmethod
    def seed_default_products():
        """Insert the Royal series when the catalogue is empty. Returns the count added."""
        if Product.query.count() > 0:
            return 0
        with unit_of_work():
            for item in ROYAL_SERIES:
                db.session.add(Product(**_product_fields(item)))
        logger.info(f"Seeded {len(ROYAL_SERIES)} default products")
        return len(ROYAL_SERIES)
