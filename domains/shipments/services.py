# domains/shipments/services.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from domains.orders import services as order_services

from .adapters import TrackingResult, resolve
from .exceptions import InvalidShipmentState, OrderNotFound, ShipmentNotFound
from .models import (
    EventSource,
    HistorySource,
    Shipment,
    ShipmentStatus,
    StatusHistoryEntry,
    TrackingEvent,
)
from .propagation import apply_status
from .refresh import refresh_if_stale, refresh_quietly, refresh_shipment
from .status_map import PENDING, UNKNOWN, normalize_status

logger = logging.getLogger(__name__)


# === 생성 =====================================================================
def create_shipment(
    *,
    order_id,
    carrier: str,
    tracking_number: str,
    notes: str = "",
    shipped_at: Optional[datetime] = None,
) -> Shipment:
    """
    주문당 1건. 이미 있으면 InvalidShipmentState (아무것도 쓰지 않음).
    생성 + 최초 이력 + 주문 shipped 처리를 한 트랜잭션으로 묶고,
    커밋 후 best-effort 로 첫 조회.
    """
    order = order_services.find_order(order_id)
    if order is None:
        raise OrderNotFound()

    if Shipment.objects.filter(order_id=order.pk).exists():
        raise InvalidShipmentState("shipment already exists for this order")

    shipped_at = shipped_at or timezone.now()
    try:
        with transaction.atomic():
            shipment = Shipment.objects.create(
                order=order,
                carrier=(carrier or "").strip().lower(),
                tracking_number=(tracking_number or "").strip(),
                status=ShipmentStatus.PENDING,
                shipped_at=shipped_at,
                notes=notes or "",
            )
            StatusHistoryEntry.objects.create(
                shipment=shipment,
                from_status="",
                to_status=PENDING,
                changed_at=timezone.now(),
                note="shipment created",
                source=HistorySource.CREATED,
            )
            order_services.mark_order_shipped(order.pk, when=shipped_at)
    except IntegrityError as e:
        # 동시 생성 경합: 유니크 제약 위반
        raise InvalidShipmentState("shipment already exists for this order") from e

    logger.info(
        "shipment %s created for order %s (%s %s)",
        shipment.pk,
        order.pk,
        shipment.carrier,
        shipment.tracking_number,
    )
    return refresh_quietly(shipment)


# === 조회 (stale 이면 갱신) ====================================================
def get_shipment(shipment_id) -> Shipment:
    shipment = Shipment.objects.filter(pk=shipment_id).first()
    if shipment is None:
        raise ShipmentNotFound()
    return refresh_if_stale(shipment)


def get_shipment_for_order(order_id) -> Shipment:
    shipment = Shipment.objects.filter(order_id=order_id).first()
    if shipment is None:
        raise ShipmentNotFound()
    return refresh_if_stale(shipment)


def get_shipment_by_tracking_number(tracking_number: str) -> Shipment:
    # 운송장 번호는 캐리어 간 중복 가능: 최근 등록분 우선
    shipment = (
        Shipment.objects.filter(tracking_number=(tracking_number or "").strip())
        .order_by("-created_at")
        .first()
    )
    if shipment is None:
        raise ShipmentNotFound()
    return refresh_if_stale(shipment)


def force_refresh(shipment_id) -> Shipment:
    """수동 새로고침: staleness 무시, 어댑터 예외 전파."""
    shipment = Shipment.objects.filter(pk=shipment_id).first()
    if shipment is None:
        raise ShipmentNotFound()
    return refresh_shipment(shipment, note="manual refresh")


def track_live(carrier: str, tracking_number: str) -> TrackingResult:
    """저장 없이 캐리어 조회 결과만 정규화해서 반환."""
    return resolve(carrier).fetch((tracking_number or "").strip())


# === 관리자 수정 ===============================================================
def _locked(shipment_id) -> Shipment:
    shipment = Shipment.objects.select_for_update().filter(pk=shipment_id).first()
    if shipment is None:
        raise ShipmentNotFound()
    return shipment


def update_shipment(
    shipment_id,
    *,
    carrier: Optional[str] = None,
    tracking_number: Optional[str] = None,
    notes: Optional[str] = None,
    estimated_delivery_at: Optional[datetime] = None,
    status: Optional[str] = None,
    status_note: str = "",
    now: Optional[datetime] = None,
) -> Shipment:
    now = now or timezone.now()
    with transaction.atomic():
        shipment = _locked(shipment_id)
        before = (shipment.carrier, shipment.tracking_number)

        if carrier is not None:
            shipment.carrier = carrier.strip().lower()
        if tracking_number is not None:
            shipment.tracking_number = tracking_number.strip()
        retargeted = (shipment.carrier, shipment.tracking_number) != before
        if retargeted:
            # 이전 운송장의 캐리어 데이터 폐기, 다음 조회에서 새 번호로 갱신
            shipment.tracking_events.filter(source=EventSource.CARRIER).delete()
            shipment.raw_carrier_response = None
            shipment.estimated_delivery_at = None
        if notes is not None:
            shipment.notes = notes
        if estimated_delivery_at is not None:
            shipment.estimated_delivery_at = estimated_delivery_at

        if status is not None:
            apply_status(
                shipment,
                normalize_status(status),
                when=now,
                note=status_note or "manual status update",
                source=HistorySource.MANUAL,
            )

        shipment.last_updated = None if retargeted else now
        shipment.save()
    return shipment


def _event_status(shipment: Shipment, status_code) -> str:
    """표준 상태값이면 그대로, 아니면 캐리어 이벤트 코드표로 매핑."""
    canonical = normalize_status(status_code)
    if canonical != UNKNOWN:
        return canonical
    return resolve(shipment.carrier).map_event_code(status_code)


def add_tracking_event(
    shipment_id,
    *,
    description: str = "",
    location: str = "",
    status_code: Any = None,
    occurred_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Tuple[Shipment, TrackingEvent]:
    now = now or timezone.now()
    has_code = status_code is not None and str(status_code).strip() != ""

    with transaction.atomic():
        shipment = _locked(shipment_id)
        status = _event_status(shipment, status_code) if has_code else UNKNOWN

        event = TrackingEvent.objects.create(
            shipment=shipment,
            occurred_at=occurred_at or now,
            description=description or "",
            location=(location or "")[:120],
            status=status,
            source=EventSource.MANUAL,
        )
        if has_code:
            apply_status(
                shipment,
                status,
                when=now,
                note=f"manual event: {description}" if description else "manual event",
                source=HistorySource.EVENT,
            )

        shipment.last_updated = now
        shipment.save()
    return shipment, event


# === 집계 =====================================================================
def shipment_stats(days: int = 7, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    days = max(int(days), 1)
    since = now - timedelta(days=days)

    by_status = (
        Shipment.objects.values("status")
        .annotate(count=Count("id"))
        .order_by("-count", "status")
    )
    by_carrier = (
        Shipment.objects.values("carrier")
        .annotate(count=Count("id"))
        .order_by("-count", "carrier")
    )
    daily = (
        Shipment.objects.filter(shipped_at__gte=since, shipped_at__lte=now)
        .annotate(day=TruncDate("shipped_at"))
        .values("day")
        .annotate(count=Count("id"))
        .order_by("day")
    )

    return {
        "total": Shipment.objects.count(),
        "days": days,
        "by_status": [{"status": r["status"], "count": r["count"]} for r in by_status],
        "by_carrier": [{"carrier": r["carrier"], "count": r["count"]} for r in by_carrier],
        "daily": [{"date": r["day"], "count": r["count"]} for r in daily],
    }
