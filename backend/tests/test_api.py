# Overview: Pytest coverage for the HTTP surface: status codes, error payloads and serialization.

import pytest


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["details"]["dealers"] == 0
        assert body["timestamp"] == "2025-01-15T09:30:00Z"

    def test_cors_for_local_frontend(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

        other = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers


class TestDealerEndpoints:
    PAYLOAD = {
        "user_id": "auth0|pharmacare",
        "business_name": "PharmaCare Wholesale",
        "gst_number": "29BBCDE1234F1Z5",
        "license_number": "KA-BLR-654321",
        "address": "45 Industrial Area, Bengaluru",
        "phone": "+91-9123456780",
    }

    def test_create_and_fetch(self, client):
        resp = client.post("/api/dealers", json=self.PAYLOAD)
        assert resp.status_code == 201
        dealer_id = resp.get_json()["id"]

        fetched = client.get(f"/api/dealers/{dealer_id}")
        assert fetched.status_code == 200
        assert fetched.get_json()["license_number"] == "KA-BLR-654321"

    def test_duplicate_is_409(self, client):
        client.post("/api/dealers", json=self.PAYLOAD)
        resp = client.post("/api/dealers", json={**self.PAYLOAD, "license_number": "KA-BLR-000000"})
        assert resp.status_code == 409
        assert resp.get_json() == {
            "error": "gst_number already exists",
            "code": "DUPLICATE",
            "field": "gst_number",
        }

    def test_missing_field_is_400(self, client):
        payload = {k: v for k, v in self.PAYLOAD.items() if k != "gst_number"}
        resp = client.post("/api/dealers", json=payload)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["field"] == "gst_number"

    def test_non_json_body_is_400(self, client):
        resp = client.post("/api/dealers", data="not json", content_type="text/plain")
        assert resp.status_code == 400

    def test_unknown_dealer_is_404(self, client):
        resp = client.get("/api/dealers/404")
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "NOT_FOUND"

    def test_identity_update_rejected(self, client, seller):
        resp = client.put(f"/api/dealers/{seller.id}", json={"gst_number": "27ZZZZZ0000Z1Z5"})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "gst_number"


class TestPagination:
    def test_limit_is_capped(self, client, make_dealer):
        make_dealer()
        body = client.get("/api/dealers?limit=5000").get_json()
        assert body["limit"] == 100

    def test_default_limit(self, client):
        assert client.get("/api/dealers").get_json()["limit"] == 10

    @pytest.mark.parametrize("query", ["limit=0", "limit=abc", "offset=-1"])
    def test_bad_paging_is_400(self, client, query):
        resp = client.get(f"/api/dealers?{query}")
        assert resp.status_code == 400


class TestProductEndpoints:
    def test_list_carries_freshness(self, client, seller, make_batch):
        make_batch(seller, expires_in=10)
        make_batch(seller, expires_in=200)

        items = client.get("/api/products").get_json()["items"]
        assert [(i["days_until_expiry"], i["expiry_class"]) for i in items] == [
            (10, "EXPIRING_SOON"),
            (200, "EXCELLENT"),
        ]
        assert items[0]["mrp"] == "2.50"

    def test_bad_expiry_class(self, client):
        resp = client.get("/api/products?expiry_class=STALE")
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "expiry_class"

    @pytest.mark.parametrize("query, field", [
        ("near_expiry_days=-5", "near_expiry_days"),
        ("order=cheapest", "order"),
    ])
    def test_bad_list_filters(self, client, query, field):
        resp = client.get(f"/api/products?{query}")
        assert resp.status_code == 400
        assert resp.get_json()["field"] == field

    def test_recent_order(self, client, seller, make_batch):
        older = make_batch(seller, expires_in=10)
        newer = make_batch(seller, expires_in=200)
        items = client.get("/api/products?order=RECENT").get_json()["items"]
        assert {i["id"] for i in items} == {older.id, newer.id}

    def test_near_expiry(self, client, seller, make_batch):
        soon = make_batch(seller, expires_in=7)
        make_batch(seller, expires_in=-1)
        make_batch(seller, expires_in=60)

        body = client.get("/api/products/near-expiry?days=30").get_json()
        assert body["as_of"] == "2025-01-15"
        assert [i["id"] for i in body["items"]] == [soon.id]

    def test_adjust_below_zero(self, client, batch):
        resp = client.post(f"/api/products/{batch.id}/adjust", json={"delta": -501})
        assert resp.status_code == 400


class TestTradingFlow:
    def test_request_to_payment(self, client, seller, buyer, batch):
        created = client.post("/api/requests", json={
            "requesting_dealer_id": buyer.id,
            "responding_dealer_id": seller.id,
            "product_id": batch.id,
            "quantity": 100,
        })
        assert created.status_code == 201
        req = created.get_json()
        assert req["status"] == "PENDING"
        assert req["valid_transitions"] == ["CONFIRMED", "REJECTED"]

        skipped = client.post(f"/api/requests/{req['id']}/transition", json={"status": "COMPLETED"})
        assert skipped.status_code == 409
        assert skipped.get_json()["code"] == "INVALID_TRANSITION"
        assert skipped.get_json()["valid_transitions"] == ["CONFIRMED", "REJECTED"]

        confirmed = client.post(f"/api/requests/{req['id']}/transition", json={"status": "confirmed"})
        assert confirmed.status_code == 200
        assert confirmed.get_json()["valid_transitions"] == ["COMPLETED"]
        assert confirmed.get_json()["response_date"] == "2025-01-15T09:30:00Z"

        invoice = client.post("/api/invoices", json={"request_id": req["id"], "subtotal": "8500.00"})
        assert invoice.status_code == 201
        inv = invoice.get_json()
        assert inv["invoice_number"] == "INV-2025-00001"
        assert (inv["subtotal"], inv["gst_amount"], inv["total"]) == ("8500.00", "1530.00", "10030.00")
        assert (inv["dealer_id"], inv["buyer_dealer_id"]) == (seller.id, buyer.id)

        paid = client.post("/api/payments", json={
            "invoice_id": inv["id"],
            "amount": 10030,
            "payment_method": "NEFT",
            "transaction_id": "TXN202501150001",
        })
        assert paid.status_code == 201
        assert paid.get_json()["status"] == "PENDING"

        detail = client.get(f"/api/invoices/{inv['id']}").get_json()
        assert [p["amount"] for p in detail["payments"]] == ["10030.00"]

        by_request = client.get(f"/api/invoices/by-request/{req['id']}")
        assert by_request.get_json()["id"] == inv["id"]

    def test_transition_requires_status(self, client, make_request, buyer, batch):
        req = make_request(buyer, batch)
        resp = client.post(f"/api/requests/{req.id}/transition", json={})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "status"

    def test_unknown_status_is_400(self, client, make_request, buyer, batch):
        req = make_request(buyer, batch)
        resp = client.post(f"/api/requests/{req.id}/transition", json={"status": "SHIPPED"})
        assert resp.status_code == 400

    def test_invoicing_pending_request_is_400(self, client, make_request, buyer, batch):
        req = make_request(buyer, batch)
        resp = client.post("/api/invoices", json={"request_id": req.id, "subtotal": "100"})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "request_id"

    def test_apply_stock_endpoint(self, client, confirmed_request, batch):
        client.post(f"/api/requests/{confirmed_request.id}/transition", json={"status": "COMPLETED"})

        first = client.post(f"/api/requests/{confirmed_request.id}/apply-stock")
        second = client.post(f"/api/requests/{confirmed_request.id}/apply-stock")

        assert first.status_code == 200
        assert second.status_code == 409
        assert client.get(f"/api/products/{batch.id}").get_json()["quantity"] == 400

    def test_invoice_number_lookup(self, client, confirmed_request):
        client.post("/api/invoices", json={
            "request_id": confirmed_request.id, "subtotal": "950", "invoice_number": "INV-2025-003",
        })
        hit = client.get("/api/invoices?invoice_number=INV-2025-003").get_json()["items"]
        miss = client.get("/api/invoices?invoice_number=INV-2025-999").get_json()["items"]
        assert [i["total"] for i in hit] == ["1121.00"]
        assert miss == []


class TestPaymentEndpoints:
    def test_unknown_status_filter_is_400(self, client):
        resp = client.get("/api/payments?status=DONE")
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "status"


class TestTaxPreview:
    def test_breakdown(self, client):
        resp = client.get("/api/invoices/tax-preview?subtotal=8500")
        assert resp.status_code == 200
        assert resp.get_json() == {
            "subtotal": "8500.00",
            "gst_rate": "0.18",
            "gst_amount": "1530.00",
            "total": "10030.00",
        }

    @pytest.mark.parametrize("query", ["", "?subtotal=", "?subtotal=0", "?subtotal=abc"])
    def test_invalid(self, client, query):
        resp = client.get(f"/api/invoices/tax-preview{query}")
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "subtotal"


class TestReports:
    def test_dashboard(self, client, seller, make_batch, confirmed_request, make_request, buyer, batch):
        make_batch(seller, expires_in=-3)
        make_batch(seller, expires_in=15)
        make_request(buyer, batch)

        body = client.get("/api/reports/dashboard").get_json()
        assert body["as_of"] == "2025-01-15"
        assert body["total_products"] == 3
        assert body["expired"] == 1
        assert body["expiring_soon"] == 1
        assert body["pending_requests"] == 1
        assert body["total_invoices"] == 0
        assert body["total_dealers"] == 2

    def test_dashboard_for_one_dealer_omits_dealer_count(self, client, seller):
        body = client.get(f"/api/reports/dashboard?dealer_id={seller.id}").get_json()
        assert "total_dealers" not in body

    def test_request_counts(self, client, confirmed_request, make_request, buyer, batch):
        make_request(buyer, batch)
        body = client.get("/api/reports/requests").get_json()
        assert body["by_status"] == {"PENDING": 1, "CONFIRMED": 1, "COMPLETED": 0, "REJECTED": 0}
        assert body["total"] == 2

    def test_revenue(self, client, confirmed_request):
        inv = client.post("/api/invoices", json={"request_id": confirmed_request.id, "subtotal": "12000"}).get_json()
        paid = client.post("/api/payments", json={
            "invoice_id": inv["id"], "amount": "14160.00", "payment_method": "UPI", "transaction_id": "TXN9",
        }).get_json()
        client.put(f"/api/payments/{paid['id']}", json={"status": "COMPLETED"})

        body = client.get("/api/reports/revenue").get_json()
        assert body["total_revenue"] == "14160.00"
        assert body["total_gst"] == "2160.00"
        assert body["by_month"][0]["month"] == "2025-01"
        assert body["payments"] == {
            "payment_count": 1,
            "amount_received": "14160.00",
            "amount_pending": "0.00",
        }

    def test_bad_dealer_filter(self, client):
        resp = client.get("/api/reports/stock?dealer_id=abc")
        assert resp.status_code == 400


class TestLedgerEndpoint:
    def test_request_history(self, client, confirmed_request):
        resp = client.get(f"/api/ledger?entity_type=request&entity_id={confirmed_request.id}")
        assert resp.status_code == 200
        events = [e["event_type"] for e in resp.get_json()["items"]]
        assert events == ["request.created", "request.confirmed"]
