from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat


class Platform(LifecycleMixin, db.Model):
    """A sales channel (marketplace or own storefront) listings are published to."""

    __tablename__ = "platforms"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)
    base_url = db.Column(db.String(512))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "base_url": self.base_url,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Platform {self.name}>"
