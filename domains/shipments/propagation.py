# domains/shipments/propagation.py
"""
배송 상태 전이 + 배송완료 부수효과.

refresh / 수동 상태 수정 / 수동 이벤트 입력 세 경로가 모두 apply_status 하나만 거친다.
호출부는 Shipment 행을 select_for_update 로 잠근 상태여야 하고,
변경된 필드 저장(save)은 호출부 책임.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .models import HistorySource, Shipment, StatusHistoryEntry
from .status_map import DELIVERED

logger = logging.getLogger(__name__)


def apply_status(
    shipment: Shipment,
    new_status: str,
    *,
    when: Optional[datetime] = None,
    note: str = "",
    source: str = HistorySource.REFRESH,
) -> bool:
    """
    상태가 바뀐 경우에만 이력 1건 추가 + status 갱신.
    반환: 상태 변경 여부
    """
    when = when or timezone.now()
    changed = new_status != shipment.status
    if changed:
        StatusHistoryEntry.objects.create(
            shipment=shipment,
            from_status=shipment.status,
            to_status=new_status,
            changed_at=when,
            note=(note or "")[:200],
            source=source,
        )
        logger.info(
            "shipment %s status %s -> %s (%s)", shipment.pk, shipment.status, new_status, source
        )
        shipment.status = new_status

    if new_status == DELIVERED:
        propagate_delivery(shipment, when)
    return changed


def propagate_delivery(shipment: Shipment, when: Optional[datetime] = None) -> bool:
    """
    최초 delivered 전이 시 1회만: delivered_at 기록 + 주문 배송완료 통지 예약.
    delivered_at 검사는 호출부의 행 잠금 안에서 수행된다.
    """
    if shipment.delivered_at is not None:
        return False

    when = when or timezone.now()
    shipment.delivered_at = when

    order_id = str(shipment.order_id)
    when_iso = when.isoformat()
    # 커밋 이후에만 통지 (롤백된 전이는 통지하지 않음)
    transaction.on_commit(lambda: _dispatch_order_delivered(order_id, when_iso))
    return True


def _dispatch_order_delivered(order_id: str, when_iso: str) -> None:
    # 지연 임포트로 순환참조 회피
    from .tasks import notify_order_delivered

    try:
        notify_order_delivered.delay(order_id, when_iso)
    except Exception:
        # 브로커 장애: 배송 기록은 이미 커밋됨, 재처리는 운영에서
        logger.exception("order delivered dispatch failed (order=%s)", order_id)
