from storefront.extensions import db
from storefront.utils import utcnow, isoformat


class AuditLog(db.Model):
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, nullable=True, index=True)
    actor_type = db.Column(db.String(10), nullable=False)  # USER, ADMIN
    action = db.Column(db.String(60), nullable=False, index=True)
    resource_type = db.Column(db.String(50))
    resource_id = db.Column(db.String(64), index=True)
    payload = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)

    ACTOR_TYPES = {"USER", "ADMIN"}

    def to_dict(self):
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "actor_type": self.actor_type,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "payload": self.payload,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.actor_type}:{self.actor_id}>"
