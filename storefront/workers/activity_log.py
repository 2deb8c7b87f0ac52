"""RQ worker job: persist one user or admin activity entry."""
import logging

from flask import current_app, has_app_context

from storefront import create_app
from storefront.extensions import db
from storefront.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

_worker_app = None


def _get_app():
    """Return an app instance for worker execution.

    Reuse the current app when already inside an app context (tests/CLI),
    otherwise lazily create the worker app once.
    """
    global _worker_app
    if has_app_context():
        return current_app._get_current_object()
    if _worker_app is None:
        _worker_app = create_app()
    return _worker_app


def record_activity(actor_type, actor_id, action, resource_type=None,
                    resource_id=None, payload=None):
    """Write an AuditLog row in its own transaction."""
    app = _get_app()
    with app.app_context():
        entry = AuditLog(
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            payload=payload or {},
        )
        db.session.add(entry)
        db.session.commit()
        logger.info("%s %s performed %s", actor_type, actor_id, action)
        return entry.id
