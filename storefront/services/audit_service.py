"""Fire-and-forget activity logging.

Callers invoke these only after their own transaction has committed. A
failure here is logged and never reaches the request.
"""
import logging

from storefront import extensions

logger = logging.getLogger(__name__)


def _enqueue(actor_type, actor_id, action, resource_type, resource_id, payload):
    from storefront.workers.activity_log import record_activity

    try:
        extensions.task_queue.enqueue(
            record_activity,
            actor_type,
            actor_id,
            action,
            resource_type,
            resource_id,
            payload,
        )
    except Exception:
        logger.exception("Failed to record %s activity %s", actor_type, action)


def log_user_activity(user_id, action, details=None, resource_type=None, resource_id=None):
    _enqueue("USER", user_id, action, resource_type, resource_id, details)


def log_admin_activity(admin_id, action, resource_type, resource_id=None, changes=None):
    _enqueue("ADMIN", admin_id, action, resource_type, resource_id, changes)
