from storefront.models.user import User
from storefront.models.category import Category
from storefront.models.brand import Brand
from storefront.models.option import Option
from storefront.models.supplier import Supplier
from storefront.models.platform import Platform
from storefront.models.product import Product
from storefront.models.variant import ProductVariant, variant_option_values
from storefront.models.inventory import Inventory
from storefront.models.payment_method import PaymentMethod
from storefront.models.coupon import CouponCampaign, UserCoupon
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderItem
from storefront.models.favorite import Favorite
from storefront.models.review import ProductReview
from storefront.models.listing import Listing
from storefront.models.purchase import Purchase
from storefront.models.audit_log import AuditLog

__all__ = [
    "User",
    "Category",
    "Brand",
    "Option",
    "Supplier",
    "Platform",
    "Product",
    "ProductVariant",
    "variant_option_values",
    "Inventory",
    "PaymentMethod",
    "CouponCampaign",
    "UserCoupon",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Favorite",
    "ProductReview",
    "Listing",
    "Purchase",
    "AuditLog",
]
