from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from domains.shipments.exceptions import CarrierUnavailable, TrackingNumberNotFound
from domains.shipments.models import Shipment

from .factories import hours_ago, make_result

BASE = "/api/v1/shipments/"


# ─────────────────────────────────────────────────────────────
# 인증 / 권한
# ─────────────────────────────────────────────────────────────
@pytest.mark.django_db
def test_jwt_token_flow(user):
    c = APIClient()
    r = c.post(
        "/api/v1/auth/token/",
        {"username": user.username, "password": user.raw_password},
        format="json",
    )
    assert r.status_code == 200, r.data
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['access']}")

    r = c.get(f"{BASE}carriers/")
    assert r.status_code == 200
    assert {row["code"] for row in r.data} >= {"dhl", "ups", "17track"}


@pytest.mark.django_db
def test_anonymous_rejected(api_client):
    assert api_client.get(f"{BASE}carriers/").status_code == 401
    assert api_client.get(BASE).status_code == 401


@pytest.mark.django_db
def test_admin_only_endpoints_forbidden_for_users(user_client, shipment_factory):
    sh = shipment_factory()
    assert user_client.get(BASE).status_code == 403
    assert user_client.get(f"{BASE}stats/").status_code == 403
    assert user_client.patch(f"{BASE}{sh.pk}/", {"notes": "x"}, format="json").status_code == 403
    assert user_client.post(f"{BASE}{sh.pk}/events/", {"description": "x"}, format="json").status_code == 403


# ─────────────────────────────────────────────────────────────
# 등록
# ─────────────────────────────────────────────────────────────
@pytest.mark.django_db
class TestCreate:
    def test_create_201(self, admin_client, order, stub_carrier):
        stub_carrier(make_result("in_transit", (hours_ago(1), "in_transit", "Departed", "Leipzig")))

        r = admin_client.post(
            BASE,
            {"order_id": str(order.id), "carrier": "dhl", "tracking_number": "DHL123"},
            format="json",
        )

        assert r.status_code == 201, r.data
        assert r.data["order_id"] == str(order.id)
        assert r.data["status"] == "in_transit"
        assert r.data["tracking_events"][0]["location"] == "Leipzig"
        assert [h["to_status"] for h in r.data["status_history"]] == ["pending", "in_transit"]

    def test_duplicate_409(self, admin_client, order, stub_carrier):
        stub_carrier(make_result("pending"))
        body = {"order_id": str(order.id), "carrier": "dhl", "tracking_number": "DHL123"}
        assert admin_client.post(BASE, body, format="json").status_code == 201

        r = admin_client.post(BASE, body, format="json")

        assert r.status_code == 409
        assert Shipment.objects.count() == 1

    def test_unknown_order_404(self, admin_client):
        r = admin_client.post(
            BASE,
            {"order_id": "00000000-0000-0000-0000-000000000000", "carrier": "dhl", "tracking_number": "X"},
            format="json",
        )
        assert r.status_code == 404

    def test_validation_400(self, admin_client):
        r = admin_client.post(BASE, {"carrier": "dhl"}, format="json")
        assert r.status_code == 400
        assert "order_id" in r.data


# ─────────────────────────────────────────────────────────────
# 목록 / 통계
# ─────────────────────────────────────────────────────────────
@pytest.mark.django_db
def test_list_filters_and_pagination(admin_client, shipment_factory):
    shipment_factory(carrier="dhl", tracking_number="DHL-A", status="in_transit")
    shipment_factory(carrier="dhl", tracking_number="DHL-B", status="delivered")
    shipment_factory(carrier="ups", tracking_number="1Z-C", status="in_transit")

    r = admin_client.get(BASE, {"page": 1, "size": 2})
    assert r.status_code == 200
    assert r.data["total"] == 3
    assert r.data["size"] == 2
    assert len(r.data["results"]) == 2

    r = admin_client.get(BASE, {"carrier": "DH", "status": "in_transit"})
    assert [row["tracking_number"] for row in r.data["results"]] == ["DHL-A"]

    r = admin_client.get(BASE, {"tracking_number": "1z"})
    assert r.data["total"] == 1


@pytest.mark.django_db
def test_stats(admin_client, shipment_factory):
    now = timezone.now()
    shipment_factory(carrier="dhl", status="delivered", shipped_at=now)
    shipment_factory(carrier="ups", status="in_transit", shipped_at=now)

    r = admin_client.get(f"{BASE}stats/", {"days": 3})

    assert r.status_code == 200
    assert r.data["total"] == 2
    assert r.data["days"] == 3
    assert sum(row["count"] for row in r.data["by_carrier"]) == 2
    assert sum(row["count"] for row in r.data["daily"]) == 2

    assert admin_client.get(f"{BASE}stats/", {"days": "abc"}).status_code == 400


# ─────────────────────────────────────────────────────────────
# 실시간 조회 (저장 없음)
# ─────────────────────────────────────────────────────────────
@pytest.mark.django_db
class TestLiveTrack:
    def test_ok(self, user_client, stub_carrier):
        stub_carrier(make_result("out_for_delivery", (hours_ago(1), "out_for_delivery", "With courier")))

        r = user_client.get(f"{BASE}track/", {"carrier": "dhl", "tracking_number": "DHL123"})

        assert r.status_code == 200
        assert r.data["status"] == "out_for_delivery"
        assert r.data["tracking_history"][0]["description"] == "With courier"
        assert Shipment.objects.count() == 0

    def test_unknown_carrier_fallback(self, user_client):
        r = user_client.get(f"{BASE}track/", {"carrier": "UnknownCarrierXYZ", "tracking_number": "A1"})
        assert r.status_code == 200
        assert r.data["status"] == "pending"
        assert len(r.data["tracking_history"]) == 2

    def test_missing_params(self, user_client):
        r = user_client.get(f"{BASE}track/", {"carrier": "dhl"})
        assert r.status_code == 400
        assert "tracking_number" in r.data

    def test_blank_carrier(self, user_client):
        r = user_client.get(f"{BASE}track/", {"carrier": "  ", "tracking_number": "X1"})
        assert r.status_code == 400
        assert "carrier" in r.data

    @pytest.mark.parametrize(
        "error, code",
        [(TrackingNumberNotFound("nope"), 404), (CarrierUnavailable("down"), 503)],
    )
    def test_errors(self, user_client, stub_carrier, error, code):
        stub_carrier(error)
        r = user_client.get(f"{BASE}track/", {"carrier": "dhl", "tracking_number": "DHL123"})
        assert r.status_code == code
        assert r.data["code"] == error.code


# ─────────────────────────────────────────────────────────────
# 저장된 건 조회 / 새로고침 / 수정 / 수동 이벤트
# ─────────────────────────────────────────────────────────────
@pytest.mark.django_db
class TestPersisted:
    def test_by_order_and_tracking_number(self, user_client, shipment_factory, stub_carrier):
        stub_carrier(make_result("in_transit"))
        sh = shipment_factory(tracking_number="DHL123", last_updated=timezone.now())

        r = user_client.get(f"{BASE}order/{sh.order_id}/")
        assert r.status_code == 200
        assert r.data["id"] == str(sh.pk)
        assert r.data["status"] == "pending"  # fresh → 캐시 그대로

        r = user_client.get(f"{BASE}track/DHL123/")
        assert r.status_code == 200
        assert r.data["id"] == str(sh.pk)

    def test_stale_read_refreshes(self, user_client, shipment_factory, stub_carrier):
        adapter = stub_carrier(make_result("in_transit"))
        sh = shipment_factory(last_updated=timezone.now() - timedelta(hours=7))

        r = user_client.get(f"{BASE}{sh.pk}/")

        assert r.status_code == 200
        assert r.data["status"] == "in_transit"
        assert adapter.calls == [sh.tracking_number]

    def test_not_found(self, user_client, db):
        assert user_client.get(f"{BASE}order/00000000-0000-0000-0000-000000000000/").status_code == 404
        assert user_client.get(f"{BASE}track/NOPE/").status_code == 404

    def test_manual_refresh_surfaces_unavailable(self, user_client, shipment_factory, stub_carrier):
        stub_carrier(CarrierUnavailable("timeout"))
        sh = shipment_factory()

        r = user_client.post(f"{BASE}{sh.pk}/refresh/")

        assert r.status_code == 503
        assert r.data["code"] == "carrier_unavailable"
        sh.refresh_from_db()
        assert sh.status == "pending"
        assert sh.status_history.count() == 1

    def test_manual_refresh_ok(self, user_client, shipment_factory, stub_carrier):
        stub_carrier(make_result("delivered"))
        sh = shipment_factory(last_updated=timezone.now())

        r = user_client.post(f"{BASE}{sh.pk}/refresh/")

        assert r.status_code == 200
        assert r.data["status"] == "delivered"
        assert r.data["delivered_at"] is not None

    def test_admin_patch_status(self, admin_client, shipment_factory):
        sh = shipment_factory()

        r = admin_client.patch(
            f"{BASE}{sh.pk}/",
            {"status": "exception", "status_note": "damaged", "notes": "box crushed"},
            format="json",
        )

        assert r.status_code == 200, r.data
        assert r.data["status"] == "exception"
        assert r.data["notes"] == "box crushed"
        assert r.data["status_history"][-1]["note"] == "damaged"

    def test_admin_patch_rejects_bad_status(self, admin_client, shipment_factory):
        sh = shipment_factory()
        r = admin_client.patch(f"{BASE}{sh.pk}/", {"status": "teleported"}, format="json")
        assert r.status_code == 400

    def test_admin_patch_requires_a_field(self, admin_client, shipment_factory):
        sh = shipment_factory()
        assert admin_client.patch(f"{BASE}{sh.pk}/", {}, format="json").status_code == 400

    def test_admin_adds_event(self, admin_client, shipment_factory):
        sh = shipment_factory(carrier="ups")

        r = admin_client.post(
            f"{BASE}{sh.pk}/events/",
            {"description": "Out for delivery", "location": "Atlanta", "status_code": "out_for_delivery"},
            format="json",
        )

        assert r.status_code == 201, r.data
        assert r.data["event"]["source"] == "manual"
        assert r.data["shipment_status"] == "out_for_delivery"

    def test_admin_event_on_missing_shipment(self, admin_client, db):
        r = admin_client.post(
            f"{BASE}00000000-0000-0000-0000-000000000000/events/",
            {"description": "x"},
            format="json",
        )
        assert r.status_code == 404
