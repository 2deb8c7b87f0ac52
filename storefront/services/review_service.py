"""Customer reviews of product variants.

New and edited reviews wait in ``PENDING_APPROVAL`` until an admin
moderates them; only approved reviews are shown publicly.
"""
import logging

from sqlalchemy import func

from storefront import schemas
from storefront.errors import AuthorizationError, NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.order import DELIVERED, Order, OrderItem
from storefront.models.product import Product
from storefront.models.review import APPROVED, PENDING_APPROVAL, ProductReview
from storefront.models.variant import ProductVariant
from storefront.services import audit_service

logger = logging.getLogger(__name__)


def _is_verified_buyer(user_id, variant_id):
    query = (
        db.session.query(OrderItem.id)
        .join(Order)
        .filter(
            Order.user_id == user_id,
            Order.order_status == DELIVERED,
            OrderItem.product_variant_id == variant_id,
        )
    )
    return db.session.query(query.exists()).scalar()


def submit_review(user, data):
    values = schemas.load(schemas.ReviewIn, data)
    variant_id = values["product_variant_id"]
    variant = db.session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError("Product variant not found")
    if not variant.is_active:
        raise ValidationError("Product variant is not available")

    existing = ProductReview.query.filter_by(user_id=user.id, product_variant_id=variant_id).first()
    if existing is not None:
        raise ValidationError("You have already reviewed this product variant")

    review = ProductReview(
        user_id=user.id,
        product_variant_id=variant_id,
        rating=values["rating"],
        title=values["title"],
        review_text=values["review_text"],
        is_verified_buyer=_is_verified_buyer(user.id, variant_id),
        review_status=PENDING_APPROVAL,
    )
    db.session.add(review)
    db.session.commit()
    logger.info("Review %d submitted for %s", review.id, variant.sku_code)

    audit_service.log_user_activity(
        user.id, "REVIEW_SUBMITTED",
        {"product_variant_id": variant_id, "rating": review.rating},
        "review", review.id,
    )
    return review


def my_reviews(user_id):
    return (
        ProductReview.active()
        .filter_by(user_id=user_id)
        .order_by(ProductReview.created_at.desc(), ProductReview.id.desc())
    )


def _own_review(user, review_id):
    review = db.session.get(ProductReview, review_id)
    if review is None or not review.is_active:
        raise NotFoundError("Review not found")
    if review.user_id != user.id:
        raise AuthorizationError("You can only change your own reviews")
    return review


def update_review(user, review_id, data):
    """Edit a review. The edit goes back to moderation."""
    review = _own_review(user, review_id)
    values = schemas.load(schemas.ReviewUpdate, data, partial=True)
    for name, value in values.items():
        setattr(review, name, value)
    review.review_status = PENDING_APPROVAL
    review.moderated_at = None
    review.moderated_by = None
    db.session.commit()

    audit_service.log_user_activity(
        user.id, "REVIEW_UPDATED", {"fields": sorted(values)}, "review", review.id
    )
    return review


def delete_review(user, review_id):
    review = _own_review(user, review_id)
    review.archive()
    db.session.commit()
    audit_service.log_user_activity(user.id, "REVIEW_DELETED", {}, "review", review.id)
    return review


def _product_reviews_query(product_id):
    return (
        ProductReview.active()
        .join(ProductVariant)
        .filter(
            ProductVariant.product_id == product_id,
            ProductReview.review_status == APPROVED,
        )
    )


def product_reviews(product_id):
    """Approved reviews for every variant of an active product, newest first."""
    product = Product.active().filter_by(id=product_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    return _product_reviews_query(product_id).order_by(
        ProductReview.created_at.desc(), ProductReview.id.desc()
    )


def rating_summary(product_id):
    rows = (
        _product_reviews_query(product_id)
        .with_entities(ProductReview.rating, func.count(ProductReview.id))
        .group_by(ProductReview.rating)
        .all()
    )
    distribution = {str(stars): 0 for stars in range(1, 6)}
    total = 0
    points = 0
    for rating, count in rows:
        distribution[str(rating)] = count
        total += count
        points += rating * count
    return {
        "average_rating": round(points / total, 2) if total else 0,
        "total_reviews": total,
        "rating_distribution": distribution,
    }
