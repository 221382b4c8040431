"""
Retry helper tests.

Verifies:
- Transient lock / version conflicts are retried with a rolled-back session
- Domain errors are never retried
- Exhausted retries surface as ConflictError (HTTP 409), not a 500
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from laundry.services import concurrency, lifecycle_service
from laundry.services.concurrency import run_with_retry
from laundry.validation import ConflictError, ValidationError


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)


class TestRunWithRetry:

    def test_transient_lock_is_retried(self, db_session, no_backoff):
        calls = []

        def op():
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("UPDATE invoices", {}, Exception("database is locked"))
            return "done"

        assert run_with_retry(op) == "done"
        assert len(calls) == 2

    def test_domain_error_is_not_retried(self, db_session, no_backoff):
        calls = []

        def op():
            calls.append(1)
            raise ValidationError("bad amount")

        with pytest.raises(ValidationError):
            run_with_retry(op)
        assert len(calls) == 1

    def test_exhausted_retries_become_conflict(self, db_session, no_backoff):
        calls = []

        def op():
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(ConflictError, match="modified concurrently") as excinfo:
            run_with_retry(op, attempts=3)

        assert len(calls) == 3
        assert isinstance(excinfo.value.__cause__, StaleDataError)


class TestConflictOverHttp:

    def test_persistent_conflict_is_409(self, client, db_session, staff_headers, make_invoice, monkeypatch, no_backoff):
        invoice = make_invoice()
        item_id = invoice.items[0].id

        def always_stale(invoice):
            raise StaleDataError("version mismatch")

        monkeypatch.setattr(lifecycle_service, "refresh_invoice_status", always_stale)

        resp = client.patch(
            f"/api/invoices/items/{item_id}/status",
            json={"status": "In Process"},
            headers=staff_headers,
        )

        assert resp.status_code == 409
        assert "modified concurrently" in resp.json["error"]
        db_session.refresh(invoice.items[0])
        assert invoice.items[0].status == "Received"
