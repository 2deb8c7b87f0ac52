from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat

PENDING_APPROVAL = "PENDING_APPROVAL"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
FLAGGED = "FLAGGED"


class ProductReview(LifecycleMixin, db.Model):
    """One user's rating of a variant.

    ``review_status`` is the moderation state; the lifecycle ``status``
    archives the review when its author deletes it.
    """

    __tablename__ = "product_reviews"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    rating = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(100))
    review_text = db.Column(db.String(2000))
    is_verified_buyer = db.Column(db.Boolean, nullable=False, default=False)
    review_status = db.Column(db.String(20), nullable=False, default=PENDING_APPROVAL, index=True)
    helpful_votes = db.Column(db.Integer, nullable=False, default=0)
    moderated_at = db.Column(db.DateTime(timezone=True))
    moderated_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    REVIEW_STATUSES = {PENDING_APPROVAL, APPROVED, REJECTED, FLAGGED}

    __table_args__ = (
        db.UniqueConstraint("user_id", "product_variant_id", name="uq_review_user_variant"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_variant_id": self.product_variant_id,
            "rating": self.rating,
            "title": self.title,
            "review_text": self.review_text,
            "is_verified_buyer": self.is_verified_buyer,
            "review_status": self.review_status,
            "helpful_votes": self.helpful_votes,
            "moderated_at": isoformat(self.moderated_at),
            "moderated_by": self.moderated_by,
            "status": self.status,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<ProductReview {self.rating}* variant={self.product_variant_id}>"
