# domains/shipments/adapters/backends.py
"""
어댑터가 원본 payload를 얻는 방식(전송 계층).

- HttpBackend: 실제 캐리어 API 호출 (requests, timeout 필수)
- SyntheticBackend: 캐리어 고유 포맷의 가짜 응답 생성 (개발/데모)

어느 쪽을 쓸지는 settings.SHIPMENTS_CARRIER_BACKEND 로 한 번만 결정한다.
어댑터 코드 안에서 환경을 검사하지 않는다.
"""
from __future__ import annotations

import logging
import random
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from ..exceptions import CarrierUnavailable, TrackingNumberNotFound
from ..status_map import DELIVERED, IN_TRANSIT, PENDING

logger = logging.getLogger(__name__)


class HttpBackend:
    def __init__(
        self,
        *,
        carriers: Optional[Dict[str, Dict[str, str]]] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.carriers = carriers if carriers is not None else settings.SHIPMENTS_CARRIERS
        self.timeout = timeout if timeout is not None else settings.SHIPMENTS_CARRIER_TIMEOUT
        # 주입된 세션은 호출부 소유, 없으면 조회마다 열고 닫음
        self.session = session

    def fetch(self, adapter, tracking_number: str) -> Any:
        if self.session is not None:
            return self._fetch(self.session, adapter, tracking_number)
        with requests.Session() as session:
            return self._fetch(session, adapter, tracking_number)

    def _fetch(self, session: requests.Session, adapter, tracking_number: str) -> Any:
        conf = self.carriers.get(adapter.code) or {}
        base_url = (conf.get("url") or "").rstrip("/")
        if not base_url:
            raise CarrierUnavailable(
                f"{adapter.code}: carrier url not configured",
                carrier=adapter.code,
                tracking_number=tracking_number,
            )

        req = adapter.build_request(tracking_number, conf.get("api_key", ""))
        url = f"{base_url}{req.get('path', '')}"
        try:
            resp = session.request(
                req.get("method", "GET"),
                url,
                params=req.get("params"),
                json=req.get("json"),
                headers={"Accept": "application/json", **(req.get("headers") or {})},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.warning("%s tracking timeout (%s): %s", adapter.code, tracking_number, e)
            raise CarrierUnavailable(
                f"{adapter.code}: upstream timeout",
                carrier=adapter.code,
                tracking_number=tracking_number,
            ) from e
        except requests.RequestException as e:
            logger.warning("%s tracking request error (%s): %s", adapter.code, tracking_number, e)
            raise CarrierUnavailable(
                f"{adapter.code}: upstream request error",
                carrier=adapter.code,
                tracking_number=tracking_number,
            ) from e

        if resp.status_code == 404:
            raise TrackingNumberNotFound(
                f"{adapter.code}: {tracking_number} not found",
                carrier=adapter.code,
                tracking_number=tracking_number,
            )
        if not (200 <= resp.status_code < 300):
            logger.warning(
                "%s non-2xx: %s %s", adapter.code, resp.status_code, resp.text[:500]
            )
            raise CarrierUnavailable(
                f"{adapter.code}: upstream status {resp.status_code}",
                carrier=adapter.code,
                tracking_number=tracking_number,
            )

        try:
            return resp.json()
        except ValueError as e:
            logger.warning("%s invalid upstream json (%s)", adapter.code, tracking_number)
            raise CarrierUnavailable(
                f"{adapter.code}: invalid upstream json",
                carrier=adapter.code,
                tracking_number=tracking_number,
            ) from e


# ---------------------------------------------------------------------------
# Synthetic
# ---------------------------------------------------------------------------
_TRANSIT_DESCRIPTIONS = (
    "Arrived at sort facility",
    "Departed sort facility",
    "In transit",
    "Cleared customs",
    "Handed over to carrier",
    "Arrived in destination country",
)
_LOCATIONS = (
    "New York",
    "Los Angeles",
    "Chicago",
    "Miami",
    "London",
    "Paris",
    "Berlin",
    "Shanghai",
    "Shenzhen",
    "Tokyo",
)


def _native_code(table: Dict[Any, str], canonical: str):
    """canonical → 캐리어 코드 (테이블의 첫 매칭)"""
    for native, mapped in table.items():
        if mapped == canonical:
            return native
    return canonical


class SyntheticBackend:
    """
    캐리어 포맷 그대로의 가짜 응답.
    시드(settings + 운송장 번호) 고정 → 같은 번호는 항상 같은 경로.
    """

    def __init__(
        self,
        *,
        clock: Optional[Callable] = None,
        seed: Optional[str] = None,
        latency: Optional[float] = None,
    ):
        self.clock = clock or timezone.now
        self.seed = seed if seed is not None else settings.SHIPMENTS_SYNTHETIC_SEED
        self.latency = latency if latency is not None else settings.SHIPMENTS_SYNTHETIC_LATENCY

    def _rng(self, adapter, tracking_number: str) -> random.Random:
        return random.Random(f"{self.seed}:{adapter.code}:{tracking_number}")

    def trajectory(self, adapter, tracking_number: str):
        """[(timestamp, canonical, description, location)] 최신순"""
        rng = self._rng(adapter, tracking_number)
        now = self.clock()
        count = rng.randint(3, 8)

        events = []
        days_ago = 0.0
        for i in range(count):
            if i:
                # 이벤트 간격 1~2일
                days_ago += rng.random() + 1
            ts = now - timedelta(days=days_ago)
            if i == 0:
                if rng.random() > 0.7:
                    events.append((ts, DELIVERED, "Delivered", "Recipient address"))
                else:
                    events.append((ts, IN_TRANSIT, "Out with courier", "Local delivery center"))
            elif i == count - 1:
                events.append((ts, PENDING, "Shipment information received", "Sender warehouse"))
            else:
                events.append(
                    (ts, IN_TRANSIT, rng.choice(_TRANSIT_DESCRIPTIONS), rng.choice(_LOCATIONS))
                )

        eta = None
        if events[0][1] != DELIVERED:
            eta = now + timedelta(days=rng.random() * 5 + 1)
        return events, eta

    def fetch(self, adapter, tracking_number: str) -> Dict[str, Any]:
        render = _RENDERERS.get(adapter.code)
        if render is None:
            raise CarrierUnavailable(
                f"{adapter.code}: no synthetic renderer",
                carrier=adapter.code,
                tracking_number=tracking_number,
            )
        if self.latency:
            time.sleep(self.latency)

        events, eta = self.trajectory(adapter, tracking_number)
        status = events[0][1]
        payload = render(adapter, tracking_number, events, status, eta)
        payload["synthetic"] = True
        return payload


# ----- 캐리어별 원본 포맷 렌더러 --------------------------------------------
def _render_dhl(adapter, tracking_number, events, status, eta):
    return {
        "shipments": [
            {
                "id": tracking_number,
                "status": _native_code(adapter.STATUS_MAP, status),
                "estimatedDeliveryDate": eta.isoformat() if eta else None,
                "events": [
                    {
                        "timestamp": ts.isoformat(),
                        "description": desc,
                        "statusCode": _native_code(adapter.EVENT_STATUS_MAP, code),
                        "location": {"address": {"addressLocality": loc}},
                    }
                    for ts, code, desc, loc in events
                ],
            }
        ]
    }


def _render_ups(adapter, tracking_number, events, status, eta):
    return {
        "trackResponse": {
            "shipment": [
                {
                    "inquiryNumber": tracking_number,
                    "currentStatus": {"code": _native_code(adapter.STATUS_MAP, status)},
                    "deliveryDate": [{"type": "SDD", "date": eta.strftime("%Y%m%d")}]
                    if eta
                    else [],
                    "package": [
                        {
                            "trackingNumber": tracking_number,
                            "activity": [
                                {
                                    "date": ts.strftime("%Y%m%d"),
                                    "time": ts.strftime("%H%M%S"),
                                    "description": desc,
                                    "status": _native_code(adapter.EVENT_STATUS_MAP, code),
                                    "location": {"address": {"city": loc}},
                                }
                                for ts, code, desc, loc in events
                            ],
                        }
                    ],
                }
            ]
        }
    }


def _render_17track(adapter, tracking_number, events, status, eta):
    return {
        "data": [
            {
                "number": tracking_number,
                "track": {
                    "e": _native_code(adapter.STATUS_MAP, status),
                    "z2": [
                        {
                            "a": int(ts.timestamp()),
                            "z": desc,
                            "c": loc,
                            "d": _native_code(adapter.EVENT_STATUS_MAP, code),
                        }
                        for ts, code, desc, loc in events
                    ],
                },
            }
        ]
    }


def _render_cainiao(adapter, tracking_number, events, status, eta):
    return {
        "success": True,
        "data": {
            "mailNo": tracking_number,
            "status": _native_code(adapter.STATUS_MAP, status),
            "estimatedDeliveryTime": eta.isoformat() if eta else None,
            "traces": [
                {
                    "eventTime": ts.isoformat(),
                    "eventDesc": desc,
                    "eventLocation": loc,
                    "eventCode": _native_code(adapter.EVENT_STATUS_MAP, code),
                }
                for ts, code, desc, loc in events
            ],
        },
    }


def _render_yunexpress(adapter, tracking_number, events, status, eta):
    return {
        "success": True,
        "data": {
            "trackingNumber": tracking_number,
            "status": _native_code(adapter.STATUS_MAP, status),
            "estimatedDeliveryDate": eta.isoformat() if eta else None,
            "trackingDetails": [
                {
                    "scanDate": ts.isoformat(),
                    "scanDescription": desc,
                    "scanLocation": loc,
                    "scanType": _native_code(adapter.EVENT_STATUS_MAP, code),
                }
                for ts, code, desc, loc in events
            ],
        },
    }


_RENDERERS = {
    "dhl": _render_dhl,
    "ups": _render_ups,
    "17track": _render_17track,
    "cainiao": _render_cainiao,
    "yunexpress": _render_yunexpress,
}


def build_backend():
    kind = (settings.SHIPMENTS_CARRIER_BACKEND or "synthetic").strip().lower()
    if kind == "http":
        return HttpBackend()
    if kind == "synthetic":
        return SyntheticBackend()
    raise ImproperlyConfigured(f"Unknown SHIPMENTS_CARRIER_BACKEND: {kind!r}")
