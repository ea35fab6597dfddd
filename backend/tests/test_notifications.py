"""
Notification tests: dispatch to owners and recipient operations.
"""

import pytest

from exhibition.errors import NotFoundError
from exhibition.models import Notification
from exhibition.services import invoice_service, notification_service


@pytest.fixture
def confirmed_invoice(db_session, owner, second_owner, owner_principal, employee, product_a):
    invoice = invoice_service.create_invoice("Jane", [{"product_id": product_a.id, "quantity": 1}], employee.id)
    invoice_service.confirm_invoice(invoice.id, owner_principal)
    return invoice


class TestDispatch:

    def test_employees_are_never_notified(self, db_session, employee, confirmed_invoice):
        assert notification_service.list_notifications(employee.id) == []

    def test_push_failure_keeps_notifications(self, db_session, owner, employee, owner_principal, product_a):
        class FailingGateway:
            def deliver(self, recipient, notification):
                raise ConnectionError("push provider down")

        invoice = invoice_service.create_invoice("Jane", [{"product_id": product_a.id, "quantity": 1}], employee.id)
        invoice_service.confirm_invoice(invoice.id, owner_principal, gateway=FailingGateway())

        assert notification_service.unread_count(owner.id) == 1

    def test_message_format(self):
        message = notification_service.format_invoice_message("Jane", 12345, "emp1")
        assert message == "New invoice from emp1 for customer Jane totalling 123.45"


class TestRecipientOperations:

    def test_unread_and_mark_read(self, db_session, owner, confirmed_invoice):
        [notification] = notification_service.list_notifications(owner.id, unread_only=True)
        assert notification.title == notification_service.INVOICE_NOTIFICATION_TITLE
        assert notification_service.unread_count(owner.id) == 1

        notification_service.mark_as_read(notification.id, owner.id)

        assert notification_service.unread_count(owner.id) == 0
        assert notification_service.list_notifications(owner.id, unread_only=True) == []
        assert len(notification_service.list_notifications(owner.id)) == 1

    def test_cannot_mark_someone_elses(self, db_session, owner, second_owner, confirmed_invoice):
        theirs = db_session.query(Notification).filter_by(user_id=second_owner.id).one()
        with pytest.raises(NotFoundError):
            notification_service.mark_as_read(theirs.id, owner.id)
        assert notification_service.unread_count(second_owner.id) == 1

    def test_mark_all(self, db_session, owner, second_owner, confirmed_invoice):
        assert notification_service.mark_all_as_read(owner.id) == 1
        assert notification_service.mark_all_as_read(owner.id) == 0
        assert notification_service.unread_count(second_owner.id) == 1


class TestNotificationRoutes:

    def test_flow(self, client, db_session, owner, owner_headers, confirmed_invoice):
        resp = client.get("/api/notifications?unread_only=true", headers=owner_headers)
        assert resp.status_code == 200
        [item] = resp.get_json()
        assert item["invoice_id"] == confirmed_invoice.id

        assert client.get("/api/notifications/unread-count", headers=owner_headers).get_json() == {"unread_count": 1}

        resp = client.post(f"/api/notifications/{item['id']}/mark-as-read", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_read"] is True

        resp = client.post("/api/notifications/mark-all-as-read", headers=owner_headers)
        assert resp.get_json() == {"updated": 0}

    def test_foreign_notification_is_404(self, client, db_session, second_owner, owner_headers, confirmed_invoice):
        theirs = db_session.query(Notification).filter_by(user_id=second_owner.id).one()
        resp = client.post(f"/api/notifications/{theirs.id}/mark-as-read", headers=owner_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "path,service_function",
        [
            ("/api/notifications", "list_notifications"),
            ("/api/notifications/unread-count", "unread_count"),
        ],
    )
    def test_storage_failure_is_500(self, client, db_session, owner_headers, monkeypatch, path, service_function):
        def _boom(*args, **kwargs):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(notification_service, service_function, _boom)

        resp = client.get(path, headers=owner_headers)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    def test_bad_unread_only_is_400(self, client, db_session, owner_headers):
        resp = client.get("/api/notifications?unread_only=maybe", headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"
