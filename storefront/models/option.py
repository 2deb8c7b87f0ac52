from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin


class Option(LifecycleMixin, db.Model):
    """A single option value, e.g. color=red or pack=12."""

    __tablename__ = "options"

    id = db.Column(db.Integer, primary_key=True)
    option_type = db.Column(db.String(50), nullable=False, index=True)
    option_value = db.Column(db.String(100), nullable=False)
    sort_order = db.Column(db.Integer, default=0)

    __table_args__ = (
        db.UniqueConstraint("option_type", "option_value", name="uq_option_pair"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "option_type": self.option_type,
            "option_value": self.option_value,
            "sort_order": self.sort_order,
            "status": self.status,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<Option {self.option_type}: {self.option_value}>"
