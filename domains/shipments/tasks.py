# domains/shipments/tasks.py
from __future__ import annotations

import logging

from celery import shared_task
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from domains.orders import services as order_services

from .models import Shipment
from .refresh import refresh_quietly, staleness_threshold
from .status_map import TERMINAL_STATUSES

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True, name="domains.shipments.tasks.poll_shipment")
def poll_shipment(self, shipment_id: str) -> str:
    """
    단일 배송건 갱신 (best-effort, 캐리어 오류는 로그만)
    반환: 갱신 후 상태
    """
    shipment = Shipment.objects.filter(pk=shipment_id).first()
    if shipment is None:
        logger.info("poll_shipment: shipment %s gone", shipment_id)
        return ""
    return refresh_quietly(shipment).status


@shared_task(name="domains.shipments.tasks.poll_stale_shipments")
def poll_stale_shipments() -> int:
    """
    진행중 + stale 인 건만 큐잉
    반환: 큐잉한 건수
    """
    cutoff = timezone.now() - staleness_threshold()
    qs = (
        Shipment.objects.exclude(status__in=TERMINAL_STATUSES)
        .filter(Q(last_updated__isnull=True) | Q(last_updated__lt=cutoff))
        .values_list("id", flat=True)
    )
    count = 0
    for shipment_id in qs.iterator():
        poll_shipment.delay(str(shipment_id))
        count += 1
    if count:
        logger.info("poll_stale_shipments: queued %d", count)
    return count


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_jitter=True,
    max_retries=5,
    acks_late=True,
    name="domains.shipments.tasks.notify_order_delivered",
)
def notify_order_delivered(self, order_id: str, delivered_at_iso: str = "") -> bool:
    """주문 도메인에 배송완료 통지. 실패 시 재시도 (주문 쪽은 멱등)."""
    when = parse_datetime(delivered_at_iso) if delivered_at_iso else None
    order = order_services.mark_order_delivered(order_id, when=when)
    return order is not None
