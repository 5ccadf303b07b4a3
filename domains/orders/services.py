from __future__ import annotations

import logging
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from .models import Order, OrderStatus

logger = logging.getLogger(__name__)


def find_order(order_id) -> Optional[Order]:
    try:
        return Order.objects.filter(pk=order_id).first()
    except (ValueError, DjangoValidationError):
        # UUID 형식이 아닌 id
        return None


# ─────────────────────────────────────────────────────────────────────────────
# 배송 도메인에서 호출하는 상태 전이 (at-least-once 호출을 전제로 멱등)
# ─────────────────────────────────────────────────────────────────────────────
@transaction.atomic
def mark_order_shipped(order_id, when=None) -> Optional[Order]:
    order = Order.objects.select_for_update().filter(pk=order_id).first()
    if order is None:
        logger.warning("mark_order_shipped: order %s not found", order_id)
        return None

    # 이미 배송완료/취소된 주문은 되돌리지 않음
    if order.status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELED):
        return order

    order.status = OrderStatus.SHIPPED
    order.shipped_at = when or timezone.now()
    order.save(update_fields=["status", "shipped_at", "updated_at"])
    logger.info("order %s marked shipped", order.pk)
    return order


@transaction.atomic
def mark_order_delivered(order_id, when=None) -> Optional[Order]:
    order = Order.objects.select_for_update().filter(pk=order_id).first()
    if order is None:
        logger.warning("mark_order_delivered: order %s not found", order_id)
        return None

    if order.status == OrderStatus.DELIVERED:
        return order

    order.status = OrderStatus.DELIVERED
    order.delivered_at = when or timezone.now()
    if order.shipped_at is None:
        order.shipped_at = order.delivered_at
    order.save(update_fields=["status", "delivered_at", "shipped_at", "updated_at"])
    logger.info("order %s marked delivered", order.pk)
    return order
