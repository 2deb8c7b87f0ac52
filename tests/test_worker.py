"""Tests for the activity log job and its enqueueing (mocked)."""
from unittest.mock import MagicMock, patch

from storefront.models import AuditLog, Brand
from storefront.services import audit_service


def test_record_activity_writes_audit_row(app, db):
    from storefront.workers.activity_log import record_activity

    entry_id = record_activity("ADMIN", 7, "UPDATE_BRAND", "brand", 3, {"name": "Acme"})

    entry = db.session.get(AuditLog, entry_id)
    assert entry.actor_type == "ADMIN"
    assert entry.action == "UPDATE_BRAND"
    assert entry.resource_id == "3"
    assert entry.payload == {"name": "Acme"}


def test_log_admin_activity_enqueues_job(db):
    queue = MagicMock()
    with patch("storefront.extensions.task_queue", queue):
        audit_service.log_admin_activity(1, "DELETE_BRAND", "brand", 9)

    args = queue.enqueue.call_args.args
    assert args[0].__name__ == "record_activity"
    assert args[1:] == ("ADMIN", 1, "DELETE_BRAND", "brand", 9, None)


def test_queue_failure_does_not_fail_request(client, admin, headers, db):
    queue = MagicMock()
    queue.enqueue.side_effect = ConnectionError("redis down")

    with patch("storefront.extensions.task_queue", queue):
        resp = client.post("/api/v1/admin/brands", json={"name": "Acme"}, headers=headers(admin))

    assert resp.status_code == 201
    db.session.expire_all()
    assert Brand.query.filter_by(name="Acme").count() == 1
    assert AuditLog.query.count() == 0
