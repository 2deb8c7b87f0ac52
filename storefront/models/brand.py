from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat


class Brand(LifecycleMixin, db.Model):
    __tablename__ = "brands"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Brand {self.name}>"
