# domains/shipments/refresh.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .adapters import TrackingResult, resolve
from .exceptions import TrackingFetchError
from .models import EventSource, HistorySource, Shipment, TrackingEvent
from .propagation import apply_status

logger = logging.getLogger(__name__)


def staleness_threshold() -> timedelta:
    return settings.SHIPMENTS_STALENESS_THRESHOLD


def is_stale(shipment: Shipment, now: Optional[datetime] = None) -> bool:
    """한 번도 갱신되지 않은 건은 항상 stale."""
    if shipment.last_updated is None:
        return True
    now = now or timezone.now()
    return (now - shipment.last_updated) > staleness_threshold()


def refresh_shipment(
    shipment: Shipment,
    *,
    now: Optional[datetime] = None,
    adapter=None,
    note: str = "carrier refresh",
) -> Shipment:
    """
    캐리어 조회 → 행 잠금 후 결과 반영.
    조회는 트랜잭션 밖에서 (네트워크 대기 중 잠금 보유 방지).
    어댑터 예외(TrackingFetchError)는 그대로 전파되고 행은 변경되지 않는다.
    """
    carrier, tracking_number = shipment.carrier, shipment.tracking_number
    adapter = adapter or resolve(carrier)
    result = adapter.fetch(tracking_number)

    now = now or timezone.now()
    with transaction.atomic():
        locked = Shipment.objects.select_for_update().get(pk=shipment.pk)
        if (locked.carrier, locked.tracking_number) != (carrier, tracking_number):
            # 조회 중 운송장이 바뀜: 이전 번호 결과는 버림
            logger.info(
                "refresh discarded for shipment %s: %s %s changed to %s %s",
                locked.pk,
                carrier,
                tracking_number,
                locked.carrier,
                locked.tracking_number,
            )
            return locked
        _apply_result(locked, result, now=now, note=note)
    return locked


def _apply_result(shipment: Shipment, result: TrackingResult, *, now, note: str) -> None:
    # 캐리어 이벤트는 조회 결과로 통째 교체 (수동 입력분은 유지)
    shipment.tracking_events.filter(source=EventSource.CARRIER).delete()
    TrackingEvent.objects.bulk_create(
        [
            TrackingEvent(
                shipment=shipment,
                occurred_at=ev.timestamp,
                description=ev.description,
                location=ev.location[:120],
                status=ev.status_code,
                source=EventSource.CARRIER,
            )
            for ev in result.tracking_history
        ]
    )

    if result.estimated_delivery_date is not None:
        shipment.estimated_delivery_at = result.estimated_delivery_date
    shipment.raw_carrier_response = result.raw
    shipment.last_updated = now

    apply_status(shipment, result.status, when=now, note=note, source=HistorySource.REFRESH)
    shipment.save()


def refresh_if_stale(shipment: Shipment, now: Optional[datetime] = None) -> Shipment:
    """조회 경로: stale일 때만 갱신, 어댑터 예외는 호출부로."""
    if not is_stale(shipment, now):
        return shipment
    return refresh_shipment(shipment, now=now, note="stale read refresh")


def refresh_quietly(shipment: Shipment, *, now: Optional[datetime] = None) -> Shipment:
    """생성 직후/백그라운드 폴링용: 실패는 로그만 남기고 기존 상태 유지."""
    try:
        return refresh_shipment(shipment, now=now)
    except TrackingFetchError as e:
        logger.warning(
            "refresh skipped for shipment %s (%s %s): %s [%s]",
            shipment.pk,
            shipment.carrier,
            shipment.tracking_number,
            e,
            e.code,
        )
        return shipment
