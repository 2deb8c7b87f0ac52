from storefront.extensions import db

ACTIVE = "ACTIVE"
ARCHIVED = "ARCHIVED"


class LifecycleMixin:
    """ACTIVE/ARCHIVED lifecycle shared by every referenceable record.

    Only ACTIVE records may be referenced by new records. Archiving keeps
    the row (and its history) in place.
    """

    LIFECYCLE_STATUSES = {ACTIVE, ARCHIVED}

    status = db.Column(db.String(20), nullable=False, default=ACTIVE, index=True)

    @property
    def is_active(self):
        return self.status == ACTIVE

    def archive(self):
        self.status = ARCHIVED

    def activate(self):
        self.status = ACTIVE

    @classmethod
    def active(cls):
        return cls.query.filter_by(status=ACTIVE)
