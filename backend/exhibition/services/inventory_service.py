# Overview: Inventory store operations: product lookup, stock locking and guarded decrement.

"""
Inventory Store

The invoice workflow consumes three operations from here:
- get_product(): plain lookup, inactive products included (callers check status)
- lock_products(): row locks for the products an invoice touches
- decrement_stock(): guarded decrement that can never drive stock negative

The remaining functions are catalog maintenance behind the catalog routes
and the CLI.
None of the stock functions commit; the caller owns the transaction.
"""

from __future__ import annotations

from sqlalchemy import func, update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import MAX_DB_INTEGER, db
from ..models import Category, Product
from ..money import to_cents
from .concurrency import lock_for_update, run_with_retry
from exhibition.time_utils import utcnow


class ProductUnavailableError(NotFoundError):
    """Product referenced by an invoice line is missing or retired."""
    http_status = 400


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds the product's stock."""
    http_status = 400


def get_product(product_id: int) -> Product | None:
    if not 0 < product_id <= MAX_DB_INTEGER:
        return None
    return db.session.query(Product).filter_by(id=product_id).first()


def lock_products(product_ids) -> dict[int, Product]:
    """
    Load and row-lock products by id.

    Locks are taken in ascending id order so two invoices touching the same
    products cannot deadlock each other.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    query = db.session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id.asc())
    return {p.id: p for p in lock_for_update(query).all()}


def decrement_stock(product_id: int, amount: int) -> None:
    """
    Decrement stock as a compare-and-set.

    The WHERE clause re-checks availability inside the UPDATE itself, so even
    without row locks two writers cannot both succeed against the same units.
    """
    if amount <= 0:
        raise ValidationError("Quantity must be at least 1", details={"product_id": product_id})

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= amount)
        .values(
            stock_quantity=Product.stock_quantity - amount,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        product = get_product(product_id)
        if product is None:
            raise ProductUnavailableError(f"Product {product_id} not found", details={"product_id": product_id})
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}",
            details={
                "product_id": product_id,
                "requested_quantity": amount,
                "available": product.stock_quantity,
            },
        )

    # Keep the identity map honest after the bulk UPDATE
    cached = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if cached is not None:
        db.session.expire(cached)


# -- catalog maintenance --

PRODUCT_TEXT_FIELDS = {
    "dose": 100,
    "notes": 1000,
    "location_in_store": 200,
}

PRODUCT_UPDATABLE_FIELDS = {"name", "price", "category_id"} | set(PRODUCT_TEXT_FIELDS)


def _clean_name(value, field: str, max_length: int) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{field} is required")
    if len(name) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return name


def _clean_optional_text(value, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    max_length = PRODUCT_TEXT_FIELDS[field]
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value.strip() or None


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_DB_INTEGER:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def find_category(name: str) -> Category | None:
    """Active category with this name, compared case-insensitively."""
    return (
        db.session.query(Category)
        .filter(
            func.lower(Category.name) == (name or "").strip().lower(),
            Category.status == Category.STATUS_ACTIVE,
        )
        .first()
    )


def list_categories() -> list[Category]:
    return (
        db.session.query(Category)
        .filter(Category.status == Category.STATUS_ACTIVE)
        .order_by(Category.name.asc())
        .all()
    )


def create_category(name: str) -> Category:
    name = _clean_name(name, "Category name", 100)
    if find_category(name):
        raise ConflictError(f"Category {name!r} already exists", details={"name": name})
    category = Category(name=name)
    db.session.add(category)
    db.session.commit()
    return category


def _active_category_id(category_id) -> int | None:
    if category_id is None:
        return None
    category_id = _positive_int(category_id, "category_id")
    exists = (
        db.session.query(Category.id)
        .filter_by(id=category_id, status=Category.STATUS_ACTIVE)
        .first()
    )
    if exists is None:
        raise ValidationError(f"Category {category_id} not found", details={"category_id": category_id})
    return category_id


def deactivate_category(category_id: int) -> Category:
    """Retire a category. Its products keep their category_id."""
    def _op():
        category = db.session.query(Category).filter_by(
            id=category_id, status=Category.STATUS_ACTIVE,
        ).first()
        if category is None:
            raise NotFoundError(f"Category {category_id} not found", details={"category_id": category_id})
        category.status = Category.STATUS_INACTIVE
        db.session.commit()
        return category

    return run_with_retry(_op)


def create_product(
    name: str,
    price,
    stock_quantity: int = 0,
    *,
    category_id: int | None = None,
    dose: str | None = None,
    notes: str | None = None,
    location_in_store: str | None = None,
) -> Product:
    name = _clean_name(name, "Product name", 200)
    if (
        not isinstance(stock_quantity, int)
        or isinstance(stock_quantity, bool)
        or not 0 <= stock_quantity <= MAX_DB_INTEGER
    ):
        raise ValidationError("stock_quantity must be a non-negative integer")

    product = Product(
        name=name,
        price_cents=to_cents(price, "price"),
        stock_quantity=stock_quantity,
        category_id=_active_category_id(category_id),
        dose=_clean_optional_text(dose, "dose"),
        notes=_clean_optional_text(notes, "notes"),
        location_in_store=_clean_optional_text(location_in_store, "location_in_store"),
    )
    db.session.add(product)
    db.session.commit()
    return product


def _require_product(product_id: int) -> Product:
    product = get_product(product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def get_active_product(product_id: int) -> Product:
    """Catalog lookup for sellers: retired products are NotFound."""
    product = get_product(product_id)
    if product is None or not product.is_active:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def update_product(product_id: int, changes: dict) -> Product:
    """
    Partially update product details.

    Stock is not editable here: it only grows through restock() and only
    shrinks through committed invoices.
    """
    if "stock_quantity" in changes:
        raise ValidationError("stock_quantity cannot be edited; use restock")
    unknown = sorted(set(changes) - PRODUCT_UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown product field(s): {', '.join(unknown)}")

    values = {}
    if "name" in changes:
        values["name"] = _clean_name(changes["name"], "Product name", 200)
    if "price" in changes:
        values["price_cents"] = to_cents(changes["price"], "price")
    if "category_id" in changes:
        values["category_id"] = _active_category_id(changes["category_id"])
    for field in PRODUCT_TEXT_FIELDS:
        if field in changes:
            values[field] = _clean_optional_text(changes[field], field)

    def _op():
        product = _require_product(product_id)
        for key, value in values.items():
            setattr(product, key, value)
        db.session.commit()
        return product

    return run_with_retry(_op)


def set_price(product_id: int, price) -> Product:
    """Change the current price. Existing invoice lines keep their captured price."""
    return update_product(product_id, {"price": price})


def restock(product_id: int, quantity: int) -> Product:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 0 < quantity <= MAX_DB_INTEGER:
        raise ValidationError("Restock quantity must be a positive integer")

    def _op():
        product = _require_product(product_id)
        if product.stock_quantity + quantity > MAX_DB_INTEGER:
            raise ValidationError("Restock quantity is out of range", details={"product_id": product_id})
        product.stock_quantity = product.stock_quantity + quantity
        db.session.commit()
        return product

    return run_with_retry(_op)


def deactivate_product(product_id: int) -> Product:
    """Retire a product. Rows referenced by invoice lines are never deleted."""
    def _op():
        product = _require_product(product_id)
        product.status = Product.STATUS_INACTIVE
        db.session.commit()
        return product

    return run_with_retry(_op)


def list_products(include_inactive: bool = False, search: str | None = None) -> list[Product]:
    """Products ordered by name, optionally filtered by a name substring."""
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.status == Product.STATUS_ACTIVE)
    search = (search or "").strip()
    if search:
        query = query.filter(Product.name.icontains(search, autoescape=True))
    return query.order_by(Product.name.asc()).all()
