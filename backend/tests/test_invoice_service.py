# Overview: Pytest coverage for GST calculation and invoice records.

from decimal import Decimal, ROUND_HALF_UP

import pytest

from medtrade.commands import CreateInvoice, PageParams, RecordPayment, UpdateInvoice
from medtrade.models import Invoice
from medtrade.services import invoice_service, payment_service, request_service
from medtrade.services.invoice_service import compute_tax
from medtrade.validation import ConflictError, DuplicateError, NotFoundError, ValidationError


def _round2(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class TestComputeTax:
    def test_reference_invoice(self):
        tax = compute_tax(Decimal("8500.00"))
        assert tax.subtotal == Decimal("8500.00")
        assert tax.gst_amount == Decimal("1530.00")
        assert tax.total == Decimal("10030.00")

    def test_serialized_as_two_decimal_strings(self):
        assert compute_tax("12000").to_dict() == {
            "subtotal": "12000.00",
            "gst_rate": "0.18",
            "gst_amount": "2160.00",
            "total": "14160.00",
        }

    def test_half_up_on_the_cent(self):
        # 0.25 * 0.18 = 0.045 -> 0.05
        assert compute_tax("0.25").gst_amount == Decimal("0.05")

    @pytest.mark.parametrize("subtotal", [0, "0.00", -1, "-250.50"])
    def test_non_positive_subtotal_rejected(self, subtotal):
        with pytest.raises(ValidationError) as exc:
            compute_tax(subtotal)
        assert exc.value.field == "subtotal"

    def test_non_numeric_subtotal_rejected(self):
        with pytest.raises(ValidationError):
            compute_tax("eighty")

    @pytest.mark.parametrize(
        "subtotal",
        ["0.01", "0.025", "0.05", "1.11", "3.333", "99.99", "149.95", "1234.565", "8500", "77777.77", "9999999.99"],
    )
    def test_total_and_tax_relationship(self, subtotal):
        s = Decimal(subtotal)
        tax = compute_tax(subtotal)
        assert tax.total == _round2(s + _round2(s * Decimal("0.18")))
        assert tax.total - tax.gst_amount == _round2(s)

    def test_tax_is_taken_from_the_unrounded_subtotal(self):
        # 0.025 * 0.18 = 0.0045 -> 0.00; 0.025 + 0.00 -> 0.03
        tax = compute_tax("0.025")
        assert (tax.subtotal, tax.gst_amount, tax.total) == (Decimal("0.03"), Decimal("0.00"), Decimal("0.03"))

    def test_float_input_has_no_binary_noise(self):
        assert compute_tax(0.1).gst_amount == Decimal("0.02")


class TestCreateInvoice:
    def test_seller_and_buyer_come_from_request(self, confirmed_request, seller, buyer):
        invoice = invoice_service.create_invoice(CreateInvoice(
            request_id=confirmed_request.id,
            subtotal=Decimal("8500.00"),
            invoice_number="INV-2025-001",
        ))

        assert invoice.dealer_id == seller.id
        assert invoice.buyer_dealer_id == buyer.id
        data = invoice.to_dict()
        assert data["subtotal"] == "8500.00"
        assert data["gst_amount"] == "1530.00"
        assert data["total"] == "10030.00"

    def test_number_generated_when_omitted(self, confirmed_request, make_request, make_dealer, batch):
        first = invoice_service.create_invoice(CreateInvoice(request_id=confirmed_request.id, subtotal=Decimal("10")))

        other = make_request(make_dealer(), batch)
        request_service.transition_request(other.id, "CONFIRMED")
        second = invoice_service.create_invoice(CreateInvoice(request_id=other.id, subtotal=Decimal("10")))

        assert first.invoice_number == "INV-2025-00001"
        assert second.invoice_number == "INV-2025-00002"

    def test_generated_number_skips_numbers_taken_by_hand(self, confirmed_request, make_request, make_dealer, batch):
        invoice_service.create_invoice(CreateInvoice(
            request_id=confirmed_request.id, subtotal=Decimal("100"), invoice_number="INV-2025-00001",
        ))

        generated = []
        for _ in range(2):
            other = make_request(make_dealer(), batch)
            request_service.transition_request(other.id, "CONFIRMED")
            invoice = invoice_service.create_invoice(CreateInvoice(request_id=other.id, subtotal=Decimal("100")))
            generated.append(invoice.invoice_number)

        assert generated == ["INV-2025-00002", "INV-2025-00003"]

    def test_duplicate_invoice_number(self, confirmed_request, make_request, make_dealer, batch):
        invoice_service.create_invoice(CreateInvoice(
            request_id=confirmed_request.id, subtotal=Decimal("100"), invoice_number="INV-2025-001",
        ))
        other = make_request(make_dealer(), batch)
        request_service.transition_request(other.id, "CONFIRMED")

        with pytest.raises(DuplicateError) as exc:
            invoice_service.create_invoice(CreateInvoice(
                request_id=other.id, subtotal=Decimal("100"), invoice_number="INV-2025-001",
            ))
        assert exc.value.field == "invoice_number"

    def test_one_invoice_per_request(self, confirmed_request):
        invoice_service.create_invoice(CreateInvoice(request_id=confirmed_request.id, subtotal=Decimal("100")))
        with pytest.raises(DuplicateError) as exc:
            invoice_service.create_invoice(CreateInvoice(request_id=confirmed_request.id, subtotal=Decimal("100")))
        assert exc.value.field == "request_id"

    def test_unique_constraint_backs_number_check(self, confirmed_request, make_request, make_dealer, batch, monkeypatch):
        invoice_service.create_invoice(CreateInvoice(
            request_id=confirmed_request.id, subtotal=Decimal("100"), invoice_number="INV-RACE",
        ))
        other = make_request(make_dealer(), batch)
        request_service.transition_request(other.id, "CONFIRMED")

        # Pre-check misses, as it would when two writers interleave
        monkeypatch.setattr(invoice_service, "get_invoice_by_number", lambda number: None)
        with pytest.raises(DuplicateError) as exc:
            invoice_service.create_invoice(CreateInvoice(
                request_id=other.id, subtotal=Decimal("100"), invoice_number="INV-RACE",
            ))
        assert exc.value.field == "invoice_number"

    def test_pending_request_cannot_be_invoiced(self, make_request, buyer, batch):
        req = make_request(buyer, batch)
        with pytest.raises(ValidationError) as exc:
            invoice_service.create_invoice(CreateInvoice(request_id=req.id, subtotal=Decimal("100")))
        assert exc.value.field == "request_id"

    def test_completed_request_can_be_invoiced(self, confirmed_request):
        request_service.transition_request(confirmed_request.id, "COMPLETED")
        invoice = invoice_service.create_invoice(CreateInvoice(request_id=confirmed_request.id, subtotal=Decimal("1")))
        assert invoice.total == Decimal("1.18")

    def test_missing_request(self, db_session):
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(CreateInvoice(request_id=404, subtotal=Decimal("100")))

    def test_mismatched_seller_rejected(self, confirmed_request, buyer):
        with pytest.raises(ValidationError) as exc:
            invoice_service.create_invoice(CreateInvoice(
                request_id=confirmed_request.id, subtotal=Decimal("100"), dealer_id=buyer.id,
            ))
        assert exc.value.field == "dealer_id"

    def test_payload_requires_subtotal(self):
        with pytest.raises(ValidationError) as exc:
            CreateInvoice.from_payload({"request_id": 1})
        assert exc.value.field == "subtotal"


class TestUpdateInvoice:
    @pytest.fixture
    def invoice(self, confirmed_request):
        return invoice_service.create_invoice(CreateInvoice(
            request_id=confirmed_request.id, subtotal=Decimal("8500.00"), invoice_number="INV-2025-001",
        ))

    def test_subtotal_change_recomputes(self, invoice):
        updated = invoice_service.update_invoice(invoice.id, UpdateInvoice.from_payload({"subtotal": "12000"}))
        assert updated.gst_amount == Decimal("2160.00")
        assert updated.total == Decimal("14160.00")

    def test_keeping_own_number_is_not_a_duplicate(self, invoice):
        updated = invoice_service.update_invoice(invoice.id, UpdateInvoice(invoice_number="INV-2025-001"))
        assert updated.invoice_number == "INV-2025-001"

    def test_taking_another_number_is_a_duplicate(self, invoice, make_request, make_dealer, batch):
        other_req = make_request(make_dealer(), batch)
        request_service.transition_request(other_req.id, "CONFIRMED")
        other = invoice_service.create_invoice(CreateInvoice(
            request_id=other_req.id, subtotal=Decimal("1"), invoice_number="INV-2025-002",
        ))

        with pytest.raises(DuplicateError):
            invoice_service.update_invoice(other.id, UpdateInvoice(invoice_number="INV-2025-001"))

    def test_request_is_immutable(self):
        with pytest.raises(ValidationError) as exc:
            UpdateInvoice.from_payload({"request_id": 2})
        assert exc.value.field == "request_id"

    def test_delete_refused_with_payments(self, invoice, db_session):
        payment_service.record_payment(RecordPayment(
            invoice_id=invoice.id, amount=Decimal("100"), payment_method="NEFT", transaction_id="TXN1",
        ))
        with pytest.raises(ConflictError):
            invoice_service.delete_invoice(invoice.id)

    def test_delete_without_payments(self, invoice, db_session):
        invoice_service.delete_invoice(invoice.id)
        assert db_session.get(Invoice, invoice.id) is None


class TestInvoiceQueries:
    def test_lookups(self, confirmed_request):
        invoice = invoice_service.create_invoice(CreateInvoice(
            request_id=confirmed_request.id, subtotal=Decimal("8500"), invoice_number="INV-2025-001",
        ))
        assert invoice_service.get_invoice_by_request(confirmed_request.id).id == invoice.id
        assert invoice_service.get_invoice_by_number("INV-2025-001").id == invoice.id
        assert invoice_service.get_invoice_by_number("INV-NOPE") is None

        found = invoice_service.list_invoices(PageParams(limit=10, offset=0, search="2025"))
        assert [i.id for i in found] == [invoice.id]

    def test_totals_and_monthly_revenue(self, confirmed_request, make_request, make_dealer, batch, clock):
        from datetime import timedelta

        invoice_service.create_invoice(CreateInvoice(request_id=confirmed_request.id, subtotal=Decimal("8500")))
        clock.advance(timedelta(days=31))
        other = make_request(make_dealer(), batch)
        request_service.transition_request(other.id, "CONFIRMED")
        invoice_service.create_invoice(CreateInvoice(request_id=other.id, subtotal=Decimal("12000")))

        assert invoice_service.invoice_totals() == {
            "invoice_count": 2,
            "total_revenue": "24190.00",
            "total_gst": "3690.00",
        }
        assert invoice_service.monthly_revenue() == [
            {"month": "2025-01", "invoice_count": 1, "revenue": "10030.00", "gst": "1530.00"},
            {"month": "2025-02", "invoice_count": 1, "revenue": "14160.00", "gst": "2160.00"},
        ]
