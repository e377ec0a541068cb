import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func

from storefront.database import Base


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class Language(str, enum.Enum):
    DE = "de"
    EN = "en"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ShippingMethod(str, enum.Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    PICKUP = "pickup"
    ASSEMBLY = "assembly"


class Carrier(str, enum.Enum):
    DHL = "DHL"
    DPD = "DPD"
    AUSTRIAN_POST = "Austrian Post"
    POST = "Post"
    GLS = "GLS"
    OTHER = "Other"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    open_id = Column(String(64), unique=True, index=True, nullable=False)  # OAuth subject
    name = Column(Text)
    email = Column(String(320))
    login_method = Column(String(64))
    role = Column(String(16), default=Role.USER.value, nullable=False)
    stripe_customer_id = Column(String(255))
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    last_signed_in = Column(DateTime, server_default=func.now(), nullable=False)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text)
    image_url = Column(String(512))
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text)
    price = Column(Integer, nullable=False)                # cents
    category_id = Column(Integer, ForeignKey("categories.id"), index=True, nullable=False)
    material = Column(String(255))
    color = Column(String(255))
    style = Column(String(255))
    dimensions = Column(String(255))                       # e.g. "200x100x80cm"
    weight = Column(String(255))                           # e.g. "45kg"
    stock = Column(Integer, default=0, nullable=False)
    sku = Column(String(255), unique=True)
    is_bestseller = Column(Boolean, default=False, nullable=False)
    is_new = Column(Boolean, default=False, nullable=False)
    discount = Column(Integer, default=0, nullable=False)  # percentage
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    image_url = Column(String(512), nullable=False)
    alt_text = Column(String(255))
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    color = Column(String(255), nullable=False)
    color_code = Column(String(7))                         # hex color
    stock = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"))
    quantity = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    order_number = Column(String(255), unique=True, index=True, nullable=False)
    status = Column(String(16), default=OrderStatus.PENDING.value, nullable=False)
    total_amount = Column(Integer, nullable=False)         # cents
    shipping_cost = Column(Integer, default=0, nullable=False)
    discount_amount = Column(Integer, default=0, nullable=False)
    promo_code = Column(String(255))
    shipping_method = Column(String(32))
    payment_method = Column(String(32))                    # card, paypal, klarna, ...
    payment_status = Column(String(16), default=PaymentStatus.PENDING.value, nullable=False)
    customer_email = Column(String(320), nullable=False)
    customer_phone = Column(String(20))
    shipping_address = Column(Text, nullable=False)        # JSON or free text
    billing_address = Column(Text)
    language = Column(String(2), default=Language.DE.value, nullable=False)
    tracking_number = Column(String(255))
    carrier = Column(String(32))
    estimated_delivery = Column(String(255))
    notes = Column(Text)
    stripe_payment_intent_id = Column(String(255), index=True)
    stripe_checkout_session_id = Column(String(255), unique=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"))
    product_name = Column(String(255), nullable=False)     # snapshot at order time
    price = Column(Integer, nullable=False)                # unit price at order time
    quantity = Column(Integer, nullable=False)
    variant_color = Column(String(255))
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class UserAddress(Base):
    __tablename__ = "user_addresses"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    type = Column(String(16), default="shipping", nullable=False)  # shipping | billing
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    street = Column(String(255), nullable=False)
    postal_code = Column(String(20), nullable=False)
    city = Column(String(255), nullable=False)
    country = Column(String(255), default="AT", nullable=False)
    phone = Column(String(20))
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))
    rating = Column(Integer, nullable=False)               # 1-5
    title = Column(String(255))
    content = Column(Text)
    image_url = Column(String(512))
    helpful = Column(Integer, default=0, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class LoyaltyPoints(Base):
    __tablename__ = "loyalty_points"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    points = Column(Integer, default=0, nullable=False)
    total_earned = Column(Integer, default=0, nullable=False)
    total_redeemed = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    action = Column(String(255), nullable=False)
    entity_type = Column(String(255))
    entity_id = Column(Integer)
    changes = Column(Text)                                 # JSON
    ip_address = Column(String(45))
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
