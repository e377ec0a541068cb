import logging
from typing import List

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from storefront import crud, lifecycle
from storefront.auth import get_current_user, require_admin
from storefront.config import get_settings
from storefront.database import get_db
from storefront.errors import NotFoundError
from storefront.models import Role, User
from storefront.schemas import (
    AddressOut,
    CartItemCreate,
    CartItemOut,
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    CheckoutSessionOut,
    CheckoutSessionRequest,
    LoyaltyOut,
    MarkShippedRequest,
    OrderDetailOut,
    OrderOut,
    ProductCreate,
    ProductDetailOut,
    ProductOut,
    ProductPage,
    ProductUpdate,
    StatusChangeRequest,
    UserOut,
    WishlistItemOut,
)
from storefront.stripe_service import (
    build_line_items,
    build_shipping_line_item,
    create_checkout_session,
    retrieve_checkout_session,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/auth/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


# Categories

@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return crud.get_categories(db)


@router.get("/categories/main", response_model=List[CategoryOut])
def list_main_categories(db: Session = Depends(get_db)):
    return crud.get_main_categories(db)


@router.get("/categories/slug/{slug}", response_model=CategoryOut)
def get_category_by_slug(slug: str, db: Session = Depends(get_db)):
    category = crud.get_category_by_slug(db, slug)
    if category is None:
        raise NotFoundError("Category not found")
    return category


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, db: Session = Depends(get_db)):
    category = crud.get_category_by_id(db, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


@router.get("/categories/{category_id}/subcategories", response_model=List[CategoryOut])
def list_subcategories(category_id: int, db: Session = Depends(get_db)):
    return crud.get_subcategories(db, category_id)


@router.post("/categories", response_model=CategoryOut)
def create_category(
    request: CategoryCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    category = crud.create_category(db, request.model_dump())
    crud.record_audit(db, admin.id, "category.create", "category", category.id, request.model_dump())
    return category


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    request: CategoryUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    changes = request.model_dump(exclude_unset=True)
    category = crud.update_category(db, category_id, changes)
    crud.record_audit(db, admin.id, "category.update", "category", category_id, changes)
    return category


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    crud.delete_category(db, category_id)
    crud.record_audit(db, admin.id, "category.delete", "category", category_id)
    return {"success": True}


# Products

@router.get("/products", response_model=List[ProductOut])
def list_all_products(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return crud.get_all_products(db)


@router.get("/products/category/{category_id}", response_model=ProductPage)
def list_products_by_category(
    category_id: int,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db)
):
    products, total = crud.get_products_by_category(db, category_id, limit, offset)
    return {"products": products, "total": total}


def _product_detail(db: Session, product) -> dict:
    detail = ProductOut.model_validate(product).model_dump()
    detail["images"] = crud.get_product_images(db, product.id)
    detail["variants"] = crud.get_product_variants(db, product.id)
    detail["reviews"] = crud.get_product_reviews(db, product.id)
    return detail


@router.get("/products/slug/{slug}", response_model=ProductDetailOut)
def get_product_by_slug(slug: str, db: Session = Depends(get_db)):
    product = crud.get_product_by_slug(db, slug)
    if product is None:
        raise NotFoundError("Product not found")
    return _product_detail(db, product)


@router.get("/products/{product_id}", response_model=ProductDetailOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = crud.get_product_by_id(db, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return _product_detail(db, product)


@router.post("/products")
def create_product(
    request: ProductCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    data = request.model_dump(
        exclude={"price", "width", "height", "depth", "weight", "images"},
        exclude_none=True,
    )
    data["price"] = round(request.price * 100)
    if request.weight is not None:
        data["weight"] = f"{request.weight:g}kg"
    if None not in (request.width, request.height, request.depth):
        data["dimensions"] = f"{request.width:g}x{request.height:g}x{request.depth:g}cm"

    product = crud.create_product(db, data, request.images)
    crud.record_audit(db, admin.id, "product.create", "product", product.id, data)
    return {"success": True, "product_id": product.id}


@router.patch("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    request: ProductUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    changes = request.model_dump(exclude_unset=True)
    product = crud.update_product(db, product_id, changes)
    crud.record_audit(db, admin.id, "product.update", "product", product_id, changes)
    return product


@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    crud.delete_product(db, product_id)
    crud.record_audit(db, admin.id, "product.delete", "product", product_id)
    return {"success": True}


# Cart, wishlist, addresses, loyalty

@router.get("/cart", response_model=List[CartItemOut])
def get_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_user_cart(db, user.id)


@router.post("/cart/items", response_model=CartItemOut)
def add_cart_item(
    request: CartItemCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if crud.get_product_by_id(db, request.product_id) is None:
        raise NotFoundError("Product not found")
    return crud.add_to_cart(db, user.id, request.product_id, request.variant_id, request.quantity)


@router.delete("/cart/items/{cart_item_id}")
def remove_cart_item(
    cart_item_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not crud.remove_from_cart(db, user.id, cart_item_id):
        raise NotFoundError("Cart item not found")
    return {"success": True}


@router.get("/wishlist", response_model=List[WishlistItemOut])
def get_wishlist(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_user_wishlist(db, user.id)


@router.get("/addresses", response_model=List[AddressOut])
def get_addresses(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_user_addresses(db, user.id)


@router.get("/loyalty", response_model=LoyaltyOut)
def get_loyalty(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    points = crud.get_user_loyalty_points(db, user.id)
    if points is None:
        return {"points": 0, "total_earned": 0, "total_redeemed": 0}
    return points


# Orders

@router.get("/orders", response_model=List[OrderOut])
def list_my_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_user_orders(db, user.id)


@router.get("/orders/all", response_model=List[OrderOut])
def list_all_orders(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return crud.get_all_orders(db)


@router.get("/orders/{order_id}", response_model=OrderDetailOut)
def get_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = crud.get_order_by_id(db, order_id)
    if order is None or (order.user_id != user.id and user.role != Role.ADMIN.value):
        raise NotFoundError("Order not found")
    detail = OrderOut.model_validate(order).model_dump()
    detail["items"] = crud.get_order_items(db, order_id)
    return detail


@router.post("/orders/{order_id}/ship")
async def mark_order_shipped(
    order_id: int,
    request: MarkShippedRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    await lifecycle.mark_shipped(
        db,
        order_id,
        tracking_number=request.tracking_number,
        carrier=request.carrier.value,
        actor=admin,
        estimated_delivery=request.estimated_delivery,
    )
    return {"success": True, "message": "Order marked as shipped"}


@router.post("/orders/{order_id}/status", response_model=OrderOut)
def change_order_status(
    order_id: int,
    request: StatusChangeRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return lifecycle.change_status(db, order_id, request.status, admin)


# Checkout

@router.post("/checkout/sessions", response_model=CheckoutSessionOut)
def create_checkout(
    request: CheckoutSessionRequest,
    http_request: Request,
    user: User = Depends(get_current_user)
):
    line_items = build_line_items(request.cart_items)
    shipping_line_item = build_shipping_line_item(request.shipping_method.value)
    if shipping_line_item:
        line_items.append(shipping_line_item)

    metadata = {
        "user_id": str(user.id),
        "customer_email": user.email or "",
        "customer_name": user.name or "",
        "shipping_method": request.shipping_method.value,
        "promo_code": request.promo_code or "",
        "discount_amount": str(request.discount_amount),
        "language": request.language.value,
    }
    origin = http_request.headers.get("origin") or get_settings().public_base_url

    try:
        session = create_checkout_session(
            line_items,
            metadata,
            customer_email=user.email,
            client_reference_id=str(user.id),
            origin=origin,
        )
    except stripe.StripeError as e:
        logger.error("Failed to create checkout session for user %s: %s", user.id, e)
        raise HTTPException(status_code=502, detail="Payment provider error")

    return {"session_id": session.id, "url": session.url}


@router.get("/checkout/sessions/{session_id}")
def get_checkout(session_id: str, user: User = Depends(get_current_user)):
    try:
        session = retrieve_checkout_session(session_id)
    except stripe.InvalidRequestError:
        raise NotFoundError("Checkout session not found")
    except stripe.StripeError as e:
        logger.error("Failed to retrieve checkout session %s: %s", session_id, e)
        raise HTTPException(status_code=502, detail="Payment provider error")

    metadata = session.get("metadata") or {}
    if metadata.get("user_id") != str(user.id):
        raise NotFoundError("Checkout session not found")

    return {
        "id": session["id"],
        "status": session.get("status"),
        "payment_status": session.get("payment_status"),
        "amount_total": session.get("amount_total"),
        "currency": session.get("currency"),
        "customer_email": session.get("customer_email"),
        "shipping_method": metadata.get("shipping_method"),
    }
