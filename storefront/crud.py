"""
Persistence access layer.

Narrow query and mutation functions over the relational store. Every
function takes the request's ``Session`` as its first argument. A store
that cannot be reached raises ``StoreUnavailableError`` on reads and writes
alike, so an empty result always means "no rows".
"""
import functools
import json
import logging
import re
import unicodedata
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from storefront.errors import (
    DuplicateError,
    NotFoundError,
    ReferentialIntegrityError,
    StoreUnavailableError,
)
from storefront.models import (
    AuditLog,
    CartItem,
    Category,
    LoyaltyPoints,
    Order,
    OrderItem,
    Product,
    ProductImage,
    ProductVariant,
    Review,
    Role,
    User,
    UserAddress,
    WishlistItem,
)

logger = logging.getLogger(__name__)

_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


def store_call(func):
    @functools.wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return func(db, *args, **kwargs)
        except OperationalError as exc:
            db.rollback()
            logger.error("Database not available in %s: %s", func.__name__, exc)
            raise StoreUnavailableError("Database not available") from exc
    return wrapper


def slugify(value: str) -> str:
    value = value.lower().translate(_UMLAUTS)
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", value).strip("-") or "item"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _apply(row, changes: dict) -> None:
    for field, value in changes.items():
        setattr(row, field, value)


# Users

@store_call
def get_user_by_open_id(db: Session, open_id: str) -> Optional[User]:
    return db.query(User).filter_by(open_id=open_id).first()


@store_call
def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


@store_call
def upsert_user(
    db: Session,
    open_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    login_method: Optional[str] = None,
    role: Optional[str] = None,
    owner_open_id: Optional[str] = None,
) -> User:
    """Create the user on first sign-in, otherwise refresh its profile.

    The owner identity is promoted to admin unless a role is given explicitly.
    """
    if not open_id:
        raise ValueError("User open_id is required for upsert")

    if role is None and owner_open_id and open_id == owner_open_id:
        role = Role.ADMIN.value

    user = db.query(User).filter_by(open_id=open_id).first()
    if user is None:
        user = User(open_id=open_id, role=role or Role.USER.value)
        db.add(user)
        logger.info("Created user for open_id %s with role %s", open_id, user.role)
    elif role is not None:
        user.role = role

    for field, value in (("name", name), ("email", email), ("login_method", login_method)):
        if value is not None:
            setattr(user, field, value)
    user.last_signed_in = _utcnow()

    db.commit()
    db.refresh(user)
    return user


@store_call
def set_stripe_customer_id(db: Session, user_id: int, customer_id: str) -> None:
    db.query(User).filter_by(id=user_id).update({"stripe_customer_id": customer_id})
    db.commit()


# Categories

@store_call
def get_categories(db: Session) -> list:
    return db.query(Category).order_by(Category.display_order, Category.id).all()


@store_call
def get_main_categories(db: Session) -> list:
    return (
        db.query(Category)
        .filter(Category.parent_id.is_(None))
        .order_by(Category.display_order, Category.id)
        .all()
    )


@store_call
def get_subcategories(db: Session, parent_id: int) -> list:
    return (
        db.query(Category)
        .filter_by(parent_id=parent_id)
        .order_by(Category.display_order, Category.id)
        .all()
    )


@store_call
def get_category_by_id(db: Session, category_id: int) -> Optional[Category]:
    return db.get(Category, category_id)


@store_call
def get_category_by_slug(db: Session, slug: str) -> Optional[Category]:
    return db.query(Category).filter_by(slug=slug).first()


def _check_parent(db: Session, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if parent_id == category_id:
        raise ReferentialIntegrityError("A category cannot be its own parent")
    if db.get(Category, parent_id) is None:
        raise NotFoundError("Parent category not found")


@store_call
def create_category(db: Session, data: dict) -> Category:
    _check_parent(db, data.get("parent_id"))
    if db.query(Category).filter_by(slug=data["slug"]).first():
        raise DuplicateError(f"Category slug '{data['slug']}' already exists")

    category = Category(**data)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Created category %s (%s)", category.id, category.slug)
    return category


@store_call
def update_category(db: Session, category_id: int, changes: dict) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    if "parent_id" in changes:
        _check_parent(db, changes["parent_id"], category_id)
    slug = changes.get("slug")
    if slug and slug != category.slug and db.query(Category).filter_by(slug=slug).first():
        raise DuplicateError(f"Category slug '{slug}' already exists")

    _apply(category, changes)
    db.commit()
    db.refresh(category)
    return category


@store_call
def delete_category(db: Session, category_id: int) -> None:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")

    subcategories = db.query(func.count(Category.id)).filter_by(parent_id=category_id).scalar()
    if subcategories:
        raise ReferentialIntegrityError(
            f"Cannot delete category with {subcategories} subcategories"
        )
    products = db.query(func.count(Product.id)).filter_by(category_id=category_id).scalar()
    if products:
        raise ReferentialIntegrityError(
            f"Cannot delete category with {products} products"
        )

    db.delete(category)
    db.commit()
    logger.info("Deleted category %s", category_id)


# Products

@store_call
def get_all_products(db: Session) -> list:
    return db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()


@store_call
def get_products_by_category(db: Session, category_id: int, limit: int = 20, offset: int = 0):
    query = db.query(Product).filter_by(category_id=category_id)
    total = query.count()
    items = query.order_by(Product.id).limit(limit).offset(offset).all()
    return items, total


@store_call
def get_product_by_id(db: Session, product_id: int) -> Optional[Product]:
    return db.get(Product, product_id)


@store_call
def get_product_by_slug(db: Session, slug: str) -> Optional[Product]:
    return db.query(Product).filter_by(slug=slug).first()


@store_call
def get_product_images(db: Session, product_id: int) -> list:
    return (
        db.query(ProductImage)
        .filter_by(product_id=product_id)
        .order_by(ProductImage.display_order, ProductImage.id)
        .all()
    )


@store_call
def get_product_variants(db: Session, product_id: int) -> list:
    return db.query(ProductVariant).filter_by(product_id=product_id).all()


@store_call
def get_product_reviews(db: Session, product_id: int) -> list:
    return (
        db.query(Review)
        .filter_by(product_id=product_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


def _unique_product_slug(db: Session, name: str) -> str:
    base = slugify(name)
    slug = base
    suffix = 2
    while db.query(Product.id).filter_by(slug=slug).first():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def _check_sku(db: Session, sku: Optional[str], product_id: Optional[int] = None) -> None:
    if not sku:
        return
    existing = db.query(Product.id).filter_by(sku=sku).first()
    if existing and existing.id != product_id:
        raise DuplicateError(f"Product SKU '{sku}' already exists")


@store_call
def create_product(db: Session, data: dict, images: Optional[list] = None) -> Product:
    if db.get(Category, data["category_id"]) is None:
        raise NotFoundError("Category not found")
    _check_sku(db, data.get("sku"))

    product = Product(slug=_unique_product_slug(db, data["name"]), **data)
    db.add(product)
    db.flush()
    for position, url in enumerate(images or []):
        db.add(ProductImage(
            product_id=product.id,
            image_url=url,
            alt_text=product.name,
            display_order=position,
        ))
    db.commit()
    db.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.slug)
    return product


@store_call
def update_product(db: Session, product_id: int, changes: dict) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    if "category_id" in changes and db.get(Category, changes["category_id"]) is None:
        raise NotFoundError("Category not found")
    _check_sku(db, changes.get("sku"), product_id)

    _apply(product, changes)
    db.commit()
    db.refresh(product)
    return product


@store_call
def delete_product(db: Session, product_id: int) -> None:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    db.query(ProductImage).filter_by(product_id=product_id).delete()
    db.query(ProductVariant).filter_by(product_id=product_id).delete()
    db.query(CartItem).filter_by(product_id=product_id).delete()
    db.query(WishlistItem).filter_by(product_id=product_id).delete()
    # order items keep their snapshot
    db.query(OrderItem).filter_by(product_id=product_id).update({"product_id": None})
    db.delete(product)
    db.commit()
    logger.info("Deleted product %s", product_id)


# Cart, wishlist, addresses, loyalty

@store_call
def get_user_cart(db: Session, user_id: int) -> list:
    return db.query(CartItem).filter_by(user_id=user_id).order_by(CartItem.id).all()


@store_call
def add_to_cart(
    db: Session, user_id: int, product_id: int, variant_id: Optional[int], quantity: int
) -> CartItem:
    item = CartItem(user_id=user_id, product_id=product_id, variant_id=variant_id, quantity=quantity)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@store_call
def remove_from_cart(db: Session, user_id: int, cart_item_id: int) -> bool:
    removed = db.query(CartItem).filter_by(id=cart_item_id, user_id=user_id).delete()
    db.commit()
    return bool(removed)


@store_call
def get_user_wishlist(db: Session, user_id: int) -> list:
    return db.query(WishlistItem).filter_by(user_id=user_id).all()


@store_call
def get_user_addresses(db: Session, user_id: int) -> list:
    return db.query(UserAddress).filter_by(user_id=user_id).all()


@store_call
def get_user_loyalty_points(db: Session, user_id: int) -> Optional[LoyaltyPoints]:
    return db.query(LoyaltyPoints).filter_by(user_id=user_id).first()


# Orders

@store_call
def get_user_orders(db: Session, user_id: int) -> list:
    return db.query(Order).filter_by(user_id=user_id).order_by(Order.created_at, Order.id).all()


@store_call
def get_all_orders(db: Session) -> list:
    return db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()


@store_call
def get_order_by_id(db: Session, order_id: int) -> Optional[Order]:
    return db.get(Order, order_id)


@store_call
def get_order_items(db: Session, order_id: int) -> list:
    return db.query(OrderItem).filter_by(order_id=order_id).order_by(OrderItem.id).all()


@store_call
def get_order_by_checkout_session(db: Session, session_id: str) -> Optional[Order]:
    return db.query(Order).filter_by(stripe_checkout_session_id=session_id).first()


@store_call
def get_order_by_payment_intent(db: Session, payment_intent_id: str) -> Optional[Order]:
    return db.query(Order).filter_by(stripe_payment_intent_id=payment_intent_id).first()


@store_call
def create_order_with_items(
    db: Session,
    order_data: dict,
    items: list,
    stripe_customer_id: Optional[str] = None,
) -> Order:
    """Insert an order, its items and the buyer's Stripe customer id in one transaction."""
    order = Order(**order_data)
    db.add(order)
    try:
        db.flush()
        for item in items:
            db.add(OrderItem(order_id=order.id, **item))
        if stripe_customer_id and order.user_id is not None:
            db.query(User).filter_by(id=order.user_id).update(
                {"stripe_customer_id": stripe_customer_id}
            )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        session_id = order_data.get("stripe_checkout_session_id")
        if session_id and get_order_by_checkout_session(db, session_id) is not None:
            raise DuplicateError("Order already exists") from exc
        logger.error("Could not insert order %s: %s", order_data.get("order_number"), exc)
        raise

    db.refresh(order)
    return order


@store_call
def set_payment_status_by_intent(db: Session, payment_intent_id: str, payment_status: str) -> int:
    updated = (
        db.query(Order)
        .filter_by(stripe_payment_intent_id=payment_intent_id)
        .update({"payment_status": payment_status})
    )
    db.commit()
    return updated


@store_call
def update_order(db: Session, order: Order, changes: dict) -> Order:
    _apply(order, changes)
    db.commit()
    db.refresh(order)
    return order


# Audit

@store_call
def record_audit(
    db: Session,
    user_id: int,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    changes: Optional[dict] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        changes=json.dumps(changes, default=str) if changes is not None else None,
        ip_address=ip_address,
    )
    db.add(entry)
    db.commit()
    return entry
