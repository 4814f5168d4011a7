"""HTTP tests for the JSON API: pricing, checkout, buyer and admin order actions."""

import pytest

from .conftest import ADMIN, BUYER, OTHER_BUYER, WEBHOOK


@pytest.fixture
def place_order(client, catalog, custom_table, address):
    def _place(custom=True, chairs=0, delivery="delivery", payment_type="full_payment", shipping_fee=0):
        lines = []
        if custom:
            lines.append({"item_id": catalog["table"], "quantity": 1, "custom": custom_table})
        if chairs:
            lines.append({"item_id": catalog["chair"], "quantity": chairs})
        body = {
            "lines": lines,
            "delivery_option": delivery,
            "payment_type": payment_type,
            "shipping_fee": shipping_fee,
        }
        if delivery == "delivery":
            body["shipping_address"] = address
        r = client.post("/api/orders", json=body, headers=BUYER)
        assert r.status_code == 201, r.text
        return r.json()

    return _place


def confirm(client, order_id, context="new_order", txn=None):
    return client.post(
        "/api/payments/confirm",
        json={"order_id": order_id, "payment_context": context, "transaction_id": txn},
        headers=WEBHOOK,
    )


class TestItems:
    def test_item_detail_lists_materials(self, client, catalog):
        r = client.get(f"/api/items/{catalog['table']}")
        assert r.status_code == 200
        body = r.json()
        assert body["is_customizable"] is True
        assert {m["name"] for m in body["materials"]} == {"Mahogany", "Narra"}

    def test_unknown_item(self, client, catalog):
        r = client.get("/api/items/999")
        assert r.status_code == 404
        assert r.json()["error_type"] == "not_found"

    def test_calculate_price(self, client, catalog):
        r = client.post(f"/api/items/{catalog['table']}/calculate-price", json={
            "dimensions": {"length": 6, "width": 3, "height": 2.5},
            "labor_days": 7,
            "leg_material_name": "Mahogany",
            "top_material_name": "Narra",
        })
        assert r.status_code == 200
        body = r.json()
        assert body["final_selling_price"] == 8625.0
        assert body["subtotal"] == 5750.0
        assert body["profit_amount"] == 2875.0
        assert body["planks"] == {"legs": 2, "tabletop": 3, "frame": 3}
        assert body["volume"] == 45.0

    @pytest.mark.parametrize(
        "dimensions,materials,field",
        [
            ({"length": 6, "width": 7, "height": 2.5}, ("Mahogany", "Narra"), "width"),
            ({"length": 1, "width": 3, "height": 2.5}, ("Mahogany", "Narra"), "length"),
            ({"length": 6, "width": 3, "height": 2.5}, ("Oak", "Narra"), "leg_material_name"),
            ({"length": 6, "width": 3, "height": 2.5}, ("Narra", "Acacia"), "top_material_name"),
        ],
    )
    def test_calculate_price_names_bad_field(self, client, catalog, dimensions, materials, field):
        r = client.post(f"/api/items/{catalog['table']}/calculate-price", json={
            "dimensions": dimensions,
            "leg_material_name": materials[0],
            "top_material_name": materials[1],
        })
        assert r.status_code == 422
        body = r.json()
        assert body["error_type"] == "validation"
        assert body["details"]["field"] == field


class TestCheckout:
    def test_mixed_order_with_deposit(self, place_order):
        data = place_order(custom=True, chairs=2, payment_type="down_payment", shipping_fee=150)
        assert data["order"]["status"] == "On Process"
        assert data["order"]["payment_status"] == "Pending"
        assert data["split"]["down_payment_amount"] == 4587.5
        assert data["split"]["remaining_balance"] == 6037.5
        assert data["amount_due"] == 4737.5

        custom_line = next(i for i in data["order"]["items"] if i["is_custom"])
        assert custom_line["unit_price"] == 8625.0
        assert custom_line["legs_frame_material"] == "Mahogany"
        assert custom_line["tabletop_material"] == "Narra"
        assert custom_line["price_breakdown"]["final_selling_price"] == "8625.00"

    def test_deposit_falls_back_without_custom_lines(self, place_order):
        data = place_order(custom=False, chairs=1, delivery="pickup", payment_type="down_payment")
        assert data["order"]["status"] == "Ready for Pickup"
        assert data["order"]["payment_type"] == "full_payment"
        assert data["amount_due"] == 1000.0

    def test_pickup_with_shipping_fee(self, client, catalog):
        r = client.post("/api/orders", json={
            "lines": [{"item_id": catalog["chair"], "quantity": 1}],
            "delivery_option": "pickup",
            "shipping_fee": 100,
        }, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "shipping_fee"

    def test_delivery_needs_address(self, client, catalog):
        r = client.post("/api/orders", json={
            "lines": [{"item_id": catalog["chair"], "quantity": 1}],
            "delivery_option": "delivery",
        }, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "shipping_address"

    def test_more_than_in_stock(self, client, catalog):
        r = client.post("/api/orders", json={
            "lines": [{"item_id": catalog["chair"], "quantity": 11}],
            "delivery_option": "pickup",
        }, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "quantity"

    def test_unknown_delivery_option(self, client, catalog):
        r = client.post("/api/orders", json={
            "lines": [{"item_id": catalog["chair"], "quantity": 1}],
            "delivery_option": "drone",
        }, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "delivery_option"


class TestBuyerOrders:
    def test_status_is_owner_only(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = client.get(f"/api/orders/{order_id}/status", headers=BUYER)
        assert r.json() == {"order_id": order_id, "status": "On Process", "payment_status": "Pending"}

        r = client.get(f"/api/orders/{order_id}/status", headers=OTHER_BUYER)
        assert r.status_code == 403
        assert client.get(f"/api/orders/{order_id}/status", headers=ADMIN).status_code == 200

    def test_user_orders(self, client, place_order):
        place_order()
        place_order(custom=False, chairs=1)
        assert len(client.get("/api/user/orders", headers=BUYER).json()) == 2
        assert client.get("/api/user/orders", headers=OTHER_BUYER).json() == []

    def test_cancel_unpaid_order(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = client.put(f"/api/orders/{order_id}/cancel", json={}, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["error_type"] == "remarks_required"

        r = client.put(f"/api/orders/{order_id}/cancel", json={"remarks": "Ordered twice"}, headers=BUYER)
        assert r.status_code == 200
        assert r.json()["status"] == "Cancelled"
        assert r.json()["remarks"] == "Ordered twice"

    def test_paid_order_cannot_be_cancelled(self, client, place_order):
        order_id = place_order()["order"]["id"]
        confirm(client, order_id, txn="t-paid")
        r = client.put(f"/api/orders/{order_id}/cancel", json={"remarks": "Changed mind"}, headers=BUYER)
        assert r.status_code == 409

    def test_refund_request(self, client, place_order, recorder):
        order_id = place_order()["order"]["id"]
        confirm(client, order_id, txn="t-refund")
        r = client.put(f"/api/orders/{order_id}/refund-request", json={}, headers=BUYER)
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "Requesting for Refund"
        assert body["payment_status"] == "Refund Requested"
        assert body["remarks"] == "Customer requested refund"
        assert recorder.status_events()[-1].actor == "Juan"

    def test_balance_checkout(self, client, place_order):
        order_id = place_order(payment_type="down_payment")["order"]["id"]
        assert client.post(f"/api/orders/{order_id}/complete-payment", headers=BUYER).status_code == 409

        assert confirm(client, order_id, txn="t-dp").json()["payment_status"] == "Downpayment Received"
        r = client.post(f"/api/orders/{order_id}/complete-payment", headers=BUYER)
        assert r.status_code == 200
        assert r.json() == {"order_id": order_id, "payment_status": "Pending Full Payment", "amount_due": 6037.5}

        r = confirm(client, order_id, context="completion", txn="t-bal")
        assert r.json()["payment_status"] == "Fully Paid"
        detail = client.get(f"/api/orders/{order_id}", headers=BUYER).json()
        assert detail["balance"] == 0.0
        assert detail["amount_paid"] == 8625.0


class TestPaymentWebhook:
    def test_bad_secret(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = client.post(
            "/api/payments/confirm",
            json={"order_id": order_id},
            headers={"X-Webhook-Secret": "guess"},
        )
        assert r.status_code == 403
        status = client.get(f"/api/orders/{order_id}/status", headers=BUYER).json()
        assert status["payment_status"] == "Pending"

    def test_unknown_context(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = confirm(client, order_id, context="tip")
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "payment_context"

    def test_unknown_order(self, client, catalog):
        assert confirm(client, 12345).status_code == 404


class TestAdminOrders:
    def test_role_is_required(self, client, place_order):
        place_order()
        assert client.get("/api/admin/orders").status_code == 401
        assert client.get("/api/admin/orders", headers=BUYER).status_code == 403
        r = client.get("/api/admin/orders", headers=ADMIN)
        assert r.status_code == 200
        assert len(r.json()) == 1

    def test_filter_by_status(self, client, place_order):
        place_order()
        place_order(custom=False, chairs=1, delivery="pickup")
        r = client.get("/api/admin/orders", params={"status": "Ready for Pickup"}, headers=ADMIN)
        assert [o["status"] for o in r.json()] == ["Ready for Pickup"]

    def test_invalid_transition(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = client.put(f"/api/admin/orders/{order_id}/status", json={"status": "Refunded", "remarks": "x"}, headers=ADMIN)
        assert r.status_code == 409
        body = r.json()
        assert body["error_type"] == "invalid_transition"
        assert body["details"] == {"current_status": "On Process", "requested_status": "Refunded"}

    def test_delivered_without_proof(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = client.put(f"/api/admin/orders/{order_id}/status", json={"status": "Delivered"}, headers=ADMIN)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "proof_ref"

    def test_status_change_is_audited(self, client, place_order, recorder):
        order_id = place_order()["order"]["id"]
        r = client.put(
            f"/api/admin/orders/{order_id}/status",
            json={"status": "Cancelled", "remarks": "Lumber unavailable"},
            headers=ADMIN,
        )
        assert r.status_code == 200
        [event] = recorder.status_events()
        assert (event.order_id, event.from_status, event.to_status) == (order_id, "On Process", "Cancelled")
        assert event.actor == "Staff"
        assert event.remarks == "Lumber unavailable"


class TestDeliveryProof:
    def test_upload_marks_delivered(self, client, place_order, tmp_path):
        order_id = place_order()["order"]["id"]
        r = client.post(
            f"/api/admin/orders/{order_id}/delivery-proof",
            files={"delivery_proof": ("doorstep.JPG", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
            data={"remarks": "Left with the guard"},
            headers=ADMIN,
        )
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["status"] == "Delivered"
        assert body["delivery_date"] is not None
        assert body["delivery_proof"].endswith(".jpg")
        assert (tmp_path / "proofs" / body["delivery_proof"]).read_bytes() == b"\xff\xd8\xff fake jpeg"

    def test_upload_on_pickup_order_marks_picked_up(self, client, place_order):
        order_id = place_order(custom=False, chairs=1, delivery="pickup")["order"]["id"]
        r = client.post(
            f"/api/admin/orders/{order_id}/delivery-proof",
            files={"delivery_proof": ("handover.png", b"png", "image/png")},
            headers=ADMIN,
        )
        assert r.status_code == 200
        assert r.json()["status"] == "Picked Up"

    def test_rejected_before_file_is_stored(self, client, place_order, tmp_path):
        order_id = place_order()["order"]["id"]
        client.put(f"/api/admin/orders/{order_id}/status", json={"status": "Cancelled", "remarks": "x"}, headers=ADMIN)
        r = client.post(
            f"/api/admin/orders/{order_id}/delivery-proof",
            files={"delivery_proof": ("doorstep.jpg", b"jpg", "image/jpeg")},
            headers=ADMIN,
        )
        assert r.status_code == 409
        assert not (tmp_path / "proofs").exists()

    def test_non_image_rejected(self, client, place_order):
        order_id = place_order()["order"]["id"]
        r = client.post(
            f"/api/admin/orders/{order_id}/delivery-proof",
            files={"delivery_proof": ("notes.pdf", b"%PDF", "application/pdf")},
            headers=ADMIN,
        )
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "delivery_proof"


class TestCart:
    def test_add_is_capped_at_stock(self, client, catalog):
        uid = BUYER["X-User-Id"]
        client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["chair"], "quantity": 6}, headers=BUYER)
        r = client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["chair"], "quantity": 6}, headers=BUYER)
        body = r.json()
        assert len(body["lines"]) == 1
        assert body["total_items"] == 10
        assert body["total_sum"] == 10000.0

    def test_custom_line_priced_on_add(self, client, catalog, custom_table):
        uid = BUYER["X-User-Id"]
        r = client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["table"], "custom": custom_table}, headers=BUYER)
        [line] = r.json()["lines"]
        assert line["custom_price"] == 8625.0
        assert line["legs_frame_material"] == "Mahogany"

    def test_out_of_stock_item(self, client, catalog):
        uid = BUYER["X-User-Id"]
        r = client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["table"]}, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "item_id"

    def test_update_and_remove(self, client, catalog):
        uid = BUYER["X-User-Id"]
        client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["chair"], "quantity": 2}, headers=BUYER)
        r = client.put(f"/api/cart/{uid}/items/{catalog['chair']}", json={"quantity": 5}, headers=BUYER)
        assert r.json()["total_items"] == 5
        r = client.delete(f"/api/cart/{uid}/items/{catalog['chair']}", headers=BUYER)
        assert r.json()["lines"] == []
        assert client.delete(f"/api/cart/{uid}/items/{catalog['chair']}", headers=BUYER).status_code == 404

    def test_remove_single_line_keeps_other_configurations(self, client, catalog, custom_table):
        uid = BUYER["X-User-Id"]
        client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["table"], "custom": custom_table}, headers=BUYER)
        wider = dict(custom_table, width=4)
        r = client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["table"], "custom": wider}, headers=BUYER)
        first, second = r.json()["lines"]

        r = client.delete(f"/api/cart/{uid}/lines/{first['id']}", headers=BUYER)
        assert r.status_code == 200
        assert r.json()["removed_line"] == first["id"]
        assert [l["id"] for l in r.json()["lines"]] == [second["id"]]
        assert client.delete(f"/api/cart/{uid}/lines/{first['id']}", headers=BUYER).status_code == 404

    def test_line_of_another_cart_is_not_found(self, client, catalog):
        uid = BUYER["X-User-Id"]
        r = client.post(f"/api/cart/{uid}/add", json={"item_id": catalog["chair"], "quantity": 1}, headers=BUYER)
        [line] = r.json()["lines"]
        other = OTHER_BUYER["X-User-Id"]
        assert client.delete(f"/api/cart/{other}/lines/{line['id']}", headers=OTHER_BUYER).status_code == 404
        assert len(client.get(f"/api/cart/{uid}/items", headers=BUYER).json()["lines"]) == 1

    def test_other_buyers_cart_is_private(self, client, catalog):
        uid = BUYER["X-User-Id"]
        assert client.get(f"/api/cart/{uid}/items", headers=OTHER_BUYER).status_code == 403


class TestStockEndpoint:
    def test_manual_adjustment_is_admin_only(self, client, catalog):
        body = {"items": [{"item_id": catalog["chair"], "quantity": 1}]}
        assert client.post("/api/items/decrease-stock", json=body, headers=BUYER).status_code == 403
        r = client.post("/api/items/decrease-stock", json=body, headers=ADMIN)
        assert r.json() == {"ok": True, "applied": True}
        assert client.get(f"/api/items/{catalog['chair']}").json()["stock"] == 9

    def test_order_decrement_by_owner_once(self, client, catalog, place_order):
        order_id = place_order(custom=False, chairs=3)["order"]["id"]
        confirm(client, order_id, txn="t-stock")
        body = {"order_id": order_id, "items": [{"item_id": catalog["chair"], "quantity": 3}]}
        assert client.post("/api/items/decrease-stock", json=body, headers=OTHER_BUYER).status_code == 403
        assert client.post("/api/items/decrease-stock", json=body, headers=BUYER).json()["applied"] is True
        assert client.post("/api/items/decrease-stock", json=body, headers=BUYER).json()["applied"] is False
        assert client.get(f"/api/items/{catalog['chair']}").json()["stock"] == 7

    def test_unpaid_order_keeps_its_stock(self, client, catalog, place_order):
        order_id = place_order(custom=False, chairs=2)["order"]["id"]
        body = {"order_id": order_id, "items": [{"item_id": catalog["chair"], "quantity": 2}]}
        r = client.post("/api/items/decrease-stock", json=body, headers=BUYER)
        assert r.status_code == 409
        assert r.json()["details"]["current_status"] == "Pending"
        assert client.get(f"/api/items/{catalog['chair']}").json()["stock"] == 10

        # once the gateway confirms, the same request goes through
        confirm(client, order_id, txn="t-late")
        assert client.post("/api/items/decrease-stock", json=body, headers=BUYER).json()["applied"] is True
        assert client.get(f"/api/items/{catalog['chair']}").json()["stock"] == 8

    def test_items_not_on_the_order_are_refused(self, client, catalog, place_order):
        order_id = place_order(custom=False, chairs=2)["order"]["id"]
        confirm(client, order_id, txn="t-mismatch")
        body = {"order_id": order_id, "items": [{"item_id": catalog["chair"], "quantity": 9}]}
        r = client.post("/api/items/decrease-stock", json=body, headers=BUYER)
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "items"
        assert client.get(f"/api/items/{catalog['chair']}").json()["stock"] == 10

    def test_negative_quantity_is_refused(self, client, catalog):
        body = {"items": [{"item_id": catalog["chair"], "quantity": -2}]}
        assert client.post("/api/items/decrease-stock", json=body, headers=ADMIN).status_code == 422
        assert client.get(f"/api/items/{catalog['chair']}").json()["stock"] == 10
