from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat


class Product(LifecycleMixin, db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, default="")
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True
    )
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    category = db.relationship("Category", lazy="joined")
    brand = db.relationship("Brand", lazy="joined")
    supplier = db.relationship("Supplier")
    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy="select",
        order_by="ProductVariant.id",
    )

    def to_dict(self, include_variants=False):
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "category_id": self.category_id,
            "brand_id": self.brand_id,
            "supplier_id": self.supplier_id,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_variants:
            data["variants"] = [v.to_dict() for v in self.variants if v.is_active]
        return data

    def __repr__(self):
        return f"<Product {self.slug}>"
