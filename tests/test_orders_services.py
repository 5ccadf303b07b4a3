"""
domains/orders/services.py 테스트 (배송 도메인이 호출하는 멱등 전이)
"""
from datetime import timedelta

import pytest

from domains.orders.models import OrderStatus
from domains.orders.services import find_order, mark_order_delivered, mark_order_shipped

from .factories import NOW


@pytest.mark.django_db
class TestFindOrder:
    def test_found(self, order):
        assert find_order(order.id) == order
        assert find_order(str(order.id)) == order

    def test_missing_or_malformed(self):
        assert find_order("00000000-0000-0000-0000-000000000000") is None
        assert find_order("not-a-uuid") is None


@pytest.mark.django_db
class TestMarkShipped:
    def test_paid_to_shipped(self, order):
        mark_order_shipped(order.id, when=NOW)
        order.refresh_from_db()
        assert order.status == OrderStatus.SHIPPED
        assert order.shipped_at == NOW

    def test_idempotent(self, order):
        mark_order_shipped(order.id, when=NOW)
        mark_order_shipped(order.id, when=NOW + timedelta(days=1))
        order.refresh_from_db()
        assert order.shipped_at == NOW

    def test_canceled_order_untouched(self, order_factory):
        order = order_factory(status=OrderStatus.CANCELED)
        mark_order_shipped(order.id, when=NOW)
        order.refresh_from_db()
        assert order.status == OrderStatus.CANCELED

    def test_missing_returns_none(self):
        assert mark_order_shipped("00000000-0000-0000-0000-000000000000") is None


@pytest.mark.django_db
class TestMarkDelivered:
    def test_delivered_once(self, order):
        mark_order_delivered(order.id, when=NOW)
        mark_order_delivered(order.id, when=NOW + timedelta(hours=2))

        order.refresh_from_db()
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at == NOW
        # shipped 없이 바로 delivered 된 경우 shipped_at 보정
        assert order.shipped_at == NOW
