# Overview: Pytest coverage for payment records against invoices.

from decimal import Decimal

import pytest

from medtrade.commands import CreateInvoice, PageParams, RecordPayment, UpdatePayment
from medtrade.models import LedgerEvent
from medtrade.services import invoice_service, payment_service
from medtrade.validation import DuplicateError, NotFoundError, ValidationError


@pytest.fixture
def invoice(confirmed_request):
    return invoice_service.create_invoice(CreateInvoice(
        request_id=confirmed_request.id, subtotal=Decimal("8500.00"), invoice_number="INV-2025-001",
    ))


def _pay(invoice, transaction_id="TXN001", amount="5000.00", method="NEFT"):
    return payment_service.record_payment(RecordPayment.from_payload({
        "invoice_id": invoice.id,
        "amount": amount,
        "payment_method": method,
        "transaction_id": transaction_id,
    }))


class TestRecordPayment:
    def test_starts_pending(self, invoice):
        payment = _pay(invoice)

        data = payment.to_dict()
        assert data["status"] == "PENDING"
        assert data["amount"] == "5000.00"
        assert data["payment_method"] == "NEFT"
        assert data["payment_date"] == "2025-01-15T09:30:00Z"

    def test_several_payments_per_invoice(self, invoice):
        _pay(invoice, "TXN001", "5000.00")
        _pay(invoice, "TXN002", "5030.00")

        found = payment_service.list_payments(PageParams(limit=10, offset=0), invoice_id=invoice.id)
        assert sorted(p.transaction_id for p in found) == ["TXN001", "TXN002"]

    def test_payments_do_not_touch_the_invoice(self, invoice):
        _pay(invoice, amount="10030.00")
        refreshed = invoice_service.get_invoice(invoice.id)
        assert refreshed.total == Decimal("10030.00")
        assert refreshed.version_id == invoice.version_id

    def test_duplicate_transaction_id(self, invoice):
        _pay(invoice, "TXN001")
        with pytest.raises(DuplicateError) as exc:
            _pay(invoice, "TXN001")
        assert exc.value.field == "transaction_id"
        assert exc.value.status_code == 409

    def test_transaction_id_is_global(self, invoice, make_request, make_dealer, batch):
        from medtrade.services import request_service

        _pay(invoice, "TXN-SHARED")
        other_req = make_request(make_dealer(), batch)
        request_service.transition_request(other_req.id, "CONFIRMED")
        other = invoice_service.create_invoice(CreateInvoice(request_id=other_req.id, subtotal=Decimal("1")))

        with pytest.raises(DuplicateError):
            _pay(other, "TXN-SHARED")

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_non_positive_amount(self, invoice, amount):
        with pytest.raises(ValidationError) as exc:
            _pay(invoice, amount=amount)
        assert exc.value.field == "amount"

    def test_service_checks_amount_too(self, invoice):
        cmd = RecordPayment(invoice_id=invoice.id, amount=Decimal("0"), payment_method="UPI", transaction_id="T0")
        with pytest.raises(ValidationError):
            payment_service.record_payment(cmd)

    def test_unknown_invoice(self, db_session):
        cmd = RecordPayment(invoice_id=777, amount=Decimal("1"), payment_method="UPI", transaction_id="T1")
        with pytest.raises(NotFoundError) as exc:
            payment_service.record_payment(cmd)
        assert exc.value.entity == "Invoice"

    def test_status_cannot_be_set_on_create(self):
        with pytest.raises(ValidationError):
            RecordPayment.from_payload({
                "invoice_id": 1,
                "amount": "1",
                "payment_method": "UPI",
                "transaction_id": "T1",
                "status": "COMPLETED",
            })


class TestUpdatePayment:
    def test_complete_is_recorded_in_ledger(self, invoice, db_session):
        payment = _pay(invoice)

        updated = payment_service.update_payment(payment.id, UpdatePayment.from_payload({"status": "completed"}))

        assert updated.status == "COMPLETED"
        event = (
            db_session.query(LedgerEvent)
            .filter_by(entity_type="payment", entity_id=payment.id, event_type="payment.completed")
            .one()
        )
        assert (event.from_status, event.to_status) == ("PENDING", "COMPLETED")

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            UpdatePayment.from_payload({"status": "REFUNDED"})
        assert exc.value.field == "status"

    def test_transaction_id_is_immutable(self):
        with pytest.raises(ValidationError) as exc:
            UpdatePayment.from_payload({"transaction_id": "TXN999"})
        assert exc.value.field == "transaction_id"

    def test_amount_and_method(self, invoice):
        payment = _pay(invoice)
        updated = payment_service.update_payment(
            payment.id, UpdatePayment.from_payload({"amount": "4999.995", "payment_method": "RTGS"}),
        )
        assert updated.amount == Decimal("5000.00")
        assert updated.payment_method == "RTGS"

    def test_missing_payment(self, db_session):
        with pytest.raises(NotFoundError):
            payment_service.update_payment(31337, UpdatePayment(status="COMPLETED"))


class TestPaymentQueries:
    def test_filters_and_search(self, invoice):
        first = _pay(invoice, "TXN001", method="NEFT")
        second = _pay(invoice, "UPI-778", method="UPI")
        payment_service.update_payment(first.id, UpdatePayment(status="COMPLETED"))

        page = PageParams(limit=10, offset=0)
        assert [p.id for p in payment_service.list_payments(page, status="completed")] == [first.id]
        assert [p.id for p in payment_service.list_payments(page, transaction_id="UPI-778")] == [second.id]
        searched = payment_service.list_payments(PageParams(limit=10, offset=0, search="upi"))
        assert [p.id for p in searched] == [second.id]

    def test_unknown_status_filter_rejected(self, invoice):
        _pay(invoice)
        with pytest.raises(ValidationError) as exc:
            payment_service.list_payments(PageParams(limit=10, offset=0), status="DONE")
        assert exc.value.field == "status"

    def test_delete(self, invoice):
        payment = _pay(invoice)
        payment_service.delete_payment(payment.id)
        with pytest.raises(NotFoundError):
            payment_service.get_payment(payment.id)
        invoice_service.delete_invoice(invoice.id)
