from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat


class PaymentMethod(LifecycleMixin, db.Model):
    """A stored, tokenised payment method. Never holds full card numbers."""

    __tablename__ = "payment_methods"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    method_type = db.Column(db.String(20), nullable=False)
    label = db.Column(db.String(100), default="")
    last_four = db.Column(db.String(4))
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    METHOD_TYPES = {"CREDIT_CARD", "DEBIT_CARD", "UPI", "WALLET", "NETBANKING", "OTHER"}

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "method_type": self.method_type,
            "label": self.label,
            "last_four": self.last_four,
            "is_default": self.is_default,
            "status": self.status,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<PaymentMethod {self.method_type} user={self.user_id}>"
