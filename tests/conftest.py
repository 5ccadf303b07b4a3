# tests/conftest.py
from datetime import timedelta
from uuid import uuid4

from django.conf import settings
from django.contrib.auth import get_user_model

import pytest
from rest_framework.test import APIClient

from config import celery_app
from domains.orders.models import Order, OrderStatus
from domains.shipments.models import HistorySource, Shipment, StatusHistoryEntry

from .factories import NOW, ScriptedAdapter, create_order, create_user

User = get_user_model()


# ─────────────────────────────────────────────────────────────
# 전역 테스트 환경 (해싱/Celery/캐리어 백엔드)
# ─────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True, scope="session")
def _fast_password_hasher(django_db_setup, django_db_blocker):
    """해시 느린 기본 해셔 대신 MD5 해셔 사용"""
    with django_db_blocker.unblock():
        settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


@pytest.fixture(autouse=True)
def _celery_eager():
    """브로커 없이 태스크 즉시 실행"""
    # namespace="CELERY" 로 로드된 설정이라 CELERY_ 키로 덮어써야 반영됨
    prev = (celery_app.conf.task_always_eager, celery_app.conf.task_eager_propagates)
    celery_app.conf.update(CELERY_TASK_ALWAYS_EAGER=True, CELERY_TASK_EAGER_PROPAGATES=False)
    yield
    celery_app.conf.update(
        CELERY_TASK_ALWAYS_EAGER=prev[0], CELERY_TASK_EAGER_PROPAGATES=prev[1]
    )


@pytest.fixture(autouse=True)
def _synthetic_carriers(settings):
    """실제 캐리어 API 호출 금지: 합성 백엔드 + 지연 없음"""
    settings.SHIPMENTS_CARRIER_BACKEND = "synthetic"
    settings.SHIPMENTS_SYNTHETIC_LATENCY = 0
    settings.SHIPMENTS_SYNTHETIC_SEED = "tests"


# ─────────────────────────────────────────────────────────────
# 클라이언트 & 인증
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(db):
    """기본 로그인 사용자"""
    return create_user(email="user@example.com")


@pytest.fixture
def admin(db):
    """관리자 사용자 (staff/superuser 플래그 세팅)"""
    u = create_user(email="admin@example.com")
    u.is_staff = True
    u.is_superuser = True
    u.save(update_fields=["is_staff", "is_superuser"])
    return u


@pytest.fixture
def user_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def admin_client(admin):
    c = APIClient()
    c.force_authenticate(user=admin)
    return c


# ─────────────────────────────────────────────────────────────
# 주문 / 배송
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def order(db, user):
    return create_order(user=user)


@pytest.fixture
def order_factory(db):
    def _make(user=None, status=OrderStatus.PAID) -> Order:
        return create_order(user=user, status=status)

    return _make


@pytest.fixture
def shipment_factory(db, order_factory):
    """
    사용법: shipment_factory(carrier="dhl", tracking_number="DHL123", last_updated=...)
    서비스 계층을 거치지 않고 최소 상태(pending + 생성 이력)만 만든다.
    """

    def _make(carrier="dhl", tracking_number=None, order=None, **fields):
        order = order or order_factory(status=OrderStatus.SHIPPED)
        fields.setdefault("shipped_at", NOW)
        shipment = Shipment.objects.create(
            order=order,
            carrier=carrier,
            tracking_number=tracking_number or f"TN{uuid4().hex[:10].upper()}",
            **fields,
        )
        StatusHistoryEntry.objects.create(
            shipment=shipment,
            from_status="",
            to_status=shipment.status,
            changed_at=NOW - timedelta(days=1),
            source=HistorySource.CREATED,
        )
        return shipment

    return _make


@pytest.fixture
def stub_carrier(monkeypatch):
    """
    사용법: adapter = stub_carrier(make_result(...), CarrierUnavailable(...))
    refresh / track_live 가 쓰는 resolve 를 ScriptedAdapter 로 교체
    """

    def _install(*outcomes):
        adapter = ScriptedAdapter(*outcomes)
        resolved = []

        def fake_resolve(code, **kwargs):
            resolved.append(code)
            return adapter

        adapter.resolved = resolved
        monkeypatch.setattr("domains.shipments.refresh.resolve", fake_resolve)
        monkeypatch.setattr("domains.shipments.services.resolve", fake_resolve)
        return adapter

    return _install


@pytest.fixture
def delivered_calls(monkeypatch):
    """주문 배송완료 통지 호출 기록 (order collaborator 대체)"""
    calls = []

    def fake_mark_order_delivered(order_id, when=None):
        calls.append((str(order_id), when))
        return object()

    monkeypatch.setattr(
        "domains.orders.services.mark_order_delivered", fake_mark_order_delivered
    )
    return calls
