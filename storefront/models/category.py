from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat


class Category(LifecycleMixin, db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, default="")
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    parent = db.relationship(
        "Category",
        remote_side=[id],
        backref=db.backref("children", lazy="select", order_by="Category.name"),
    )

    def ancestors(self):
        """Yield parents from nearest to the root, stopping on a cycle."""
        seen = {self.id}
        node = self.parent
        while node is not None and node.id not in seen:
            seen.add(node.id)
            yield node
            node = node.parent

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "parent_id": self.parent_id,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Category {self.slug}>"
