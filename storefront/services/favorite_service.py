import logging

from storefront import schemas
from storefront.errors import NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.favorite import Favorite
from storefront.models.variant import ProductVariant
from storefront.services import audit_service
from storefront.utils import utcnow

logger = logging.getLogger(__name__)


def list_favorites(user_id):
    return (
        Favorite.active()
        .filter_by(user_id=user_id)
        .order_by(Favorite.added_at.desc(), Favorite.id.desc())
    )


def _user_favorite(user_id, variant_id):
    favorite = Favorite.active().filter_by(user_id=user_id, product_variant_id=variant_id).first()
    if favorite is None:
        raise NotFoundError("Favorite not found")
    return favorite


def add_favorite(user, data):
    """Save a variant for the user. A removed favorite comes back to life."""
    values = schemas.load(schemas.FavoriteIn, data)
    variant_id = values["product_variant_id"]
    variant = db.session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError("Product variant not found")
    if not variant.is_active:
        raise ValidationError("Product variant is not available")

    favorite = Favorite.query.filter_by(user_id=user.id, product_variant_id=variant_id).first()
    if favorite is not None and favorite.is_active:
        raise ValidationError("Product variant is already in favorites")
    if favorite is None:
        favorite = Favorite(user_id=user.id, product_variant_id=variant_id)
        db.session.add(favorite)
    else:
        favorite.activate()
        favorite.added_at = utcnow()
    favorite.user_notes = values["user_notes"]
    db.session.commit()

    audit_service.log_user_activity(
        user.id, "FAVORITE_ADDED", {"sku_code": variant.sku_code}, "favorite", favorite.id
    )
    return favorite


def update_notes(user, variant_id, data):
    values = schemas.load(schemas.FavoriteNotes, data)
    favorite = _user_favorite(user.id, variant_id)
    favorite.user_notes = values["user_notes"]
    db.session.commit()
    return favorite


def remove_favorite(user, variant_id):
    favorite = _user_favorite(user.id, variant_id)
    favorite.archive()
    db.session.commit()
    logger.info("Favorite %d removed by user %d", favorite.id, user.id)

    audit_service.log_user_activity(
        user.id, "FAVORITE_REMOVED", {"product_variant_id": variant_id}, "favorite", favorite.id
    )
    return favorite
