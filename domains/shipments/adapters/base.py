# domains/shipments/adapters/base.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time as dt_time, timezone as dt_timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..exceptions import CarrierUnavailable, TrackingNumberNotFound
from ..status_map import UNKNOWN, map_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CarrierEvent:
    timestamp: datetime
    description: str = ""
    location: str = ""
    status_code: str = UNKNOWN


@dataclass
class TrackingResult:
    carrier: str
    tracking_number: str
    status: str
    tracking_history: List[CarrierEvent] = field(default_factory=list)
    estimated_delivery_date: Optional[datetime] = None
    raw: Any = None


# ---------------------------------------------------------------------------
# 시각 파싱: ISO 문자열, "YYYYMMDD HHMMSS", Unix 초 모두 허용
# ---------------------------------------------------------------------------
def parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        s = str(value).strip()
        if s.isdigit() and len(s) >= 9:
            return parse_timestamp(int(s))
        try:
            dt = parse_datetime(s) or _parse_compact(s)
            if dt is None:
                d = parse_date(s)
                dt = datetime.combine(d, dt_time.min) if d else None
        except ValueError:
            return None
        if dt is None:
            return None
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return dt


def _parse_compact(s: str) -> Optional[datetime]:
    # UPS 스타일 "20240105 101500" / "20240105"
    for fmt in ("%Y%m%d %H%M%S", "%Y%m%d"):
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def dig(obj, *path, default=None):
    """중첩 dict 안전 조회: dig(ev, "location", "address", "city")"""
    cur = obj
    for key in path:
        if isinstance(cur, Mapping):
            cur = cur.get(key)
        elif isinstance(cur, list) and isinstance(key, int) and -len(cur) <= key < len(cur):
            cur = cur[key]
        else:
            return default
        if cur is None:
            return default
    return cur


class CarrierAdapter:
    """
    캐리어 어댑터 공통 파이프라인.
    하위 클래스는 상태 코드 테이블(데이터)과 응답 구조 추출만 정의한다.

      fetch(tracking_number) → backend 호출 → normalize(payload)
        1) extract: 캐리어 원본 구조에서 shipment 객체 + 이벤트 목록
        2) 이벤트 코드 매핑 (미등록 → unknown)
        3) timestamp 내림차순 정렬
        4) 캐리어 레벨 status 우선, 없으면 최신 이벤트 상태
    """

    code: str = ""
    name: str = ""
    aliases: Tuple[str, ...] = ()
    provides_eta: bool = True

    EVENT_STATUS_MAP: Dict[Any, str] = {}
    STATUS_MAP: Dict[Any, str] = {}

    def __init__(self, backend=None):
        if backend is None:
            from .backends import build_backend

            backend = build_backend()
        self.backend = backend

    # ----- public ----------------------------------------------------------
    def fetch(self, tracking_number: str) -> TrackingResult:
        payload = self.backend.fetch(self, tracking_number)
        return self.normalize(payload, tracking_number)

    def map_event_code(self, code) -> str:
        return map_code(self.EVENT_STATUS_MAP, code)

    def map_status(self, code) -> str:
        return map_code(self.STATUS_MAP, code)

    def normalize(self, payload, tracking_number: str) -> TrackingResult:
        if not isinstance(payload, Mapping):
            raise CarrierUnavailable(
                f"{self.code}: unexpected payload type {type(payload).__name__}",
                carrier=self.code,
                tracking_number=tracking_number,
            )

        shipment = self.extract_shipment(payload, tracking_number)
        if not isinstance(shipment, Mapping):
            raise TrackingNumberNotFound(
                f"{self.code}: no shipment for {tracking_number}",
                carrier=self.code,
                tracking_number=tracking_number,
            )

        raw_events = self.extract_events(shipment)
        if not isinstance(raw_events, list):
            logger.warning("%s: event list missing or malformed for %s", self.code, tracking_number)
            raw_events = []

        history = []
        for raw in raw_events:
            if not isinstance(raw, Mapping):
                continue
            event = self.parse_event(raw)
            if event is None:
                logger.warning("%s: dropped event without usable timestamp: %r", self.code, raw)
                continue
            history.append(event)
        # 동일 시각 이벤트는 캐리어 응답 순서 유지 (stable sort)
        history.sort(key=lambda e: e.timestamp, reverse=True)

        status = self.map_status(self.extract_status(shipment))
        if status == UNKNOWN and history:
            status = history[0].status_code

        eta = None
        if self.provides_eta:
            eta = parse_timestamp(self.extract_eta(shipment))

        return TrackingResult(
            carrier=self.code,
            tracking_number=tracking_number,
            status=status,
            tracking_history=history,
            estimated_delivery_date=eta,
            raw=dict(payload),
        )

    # ----- 하위 클래스 구현 -------------------------------------------------
    def extract_shipment(self, payload: Mapping, tracking_number: str):
        raise NotImplementedError

    def extract_events(self, shipment: Mapping):
        return shipment.get("events")

    def extract_status(self, shipment: Mapping):
        return shipment.get("status")

    def extract_eta(self, shipment: Mapping):
        return None

    def event_fields(self, raw: Mapping) -> Tuple[Any, Any, Any, Any]:
        """(timestamp, description, location, native_code)"""
        raise NotImplementedError

    def parse_event(self, raw: Mapping) -> Optional[CarrierEvent]:
        when, description, location, native_code = self.event_fields(raw)
        ts = parse_timestamp(when)
        if ts is None:
            return None
        return CarrierEvent(
            timestamp=ts,
            description=_text(description),
            location=_text(location),
            status_code=self.map_event_code(native_code),
        )

    # ----- HTTP 백엔드용 요청 정의 -----------------------------------------
    def build_request(self, tracking_number: str, api_key: str) -> Dict[str, Any]:
        """HttpBackend가 쓰는 요청 스펙: method, path, params/json, headers"""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code={self.code!r}>"
