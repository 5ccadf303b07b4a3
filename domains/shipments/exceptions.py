from __future__ import annotations

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound


# ---------------------------------------------------------------------------
# 어댑터 조회 실패 (호출부에서 경로별로 다르게 처리)
# ---------------------------------------------------------------------------
class TrackingFetchError(Exception):
    """캐리어 조회 실패 공통 부모."""

    code = "tracking_fetch_error"

    def __init__(self, message: str = "", *, carrier: str = "", tracking_number: str = ""):
        super().__init__(message or self.code)
        self.carrier = carrier
        self.tracking_number = tracking_number


class TrackingNumberNotFound(TrackingFetchError):
    """캐리어가 응답했지만 해당 운송장 정보가 없음."""

    code = "tracking_number_not_found"


class CarrierUnavailable(TrackingFetchError):
    """네트워크/타임아웃/응답 구조 이상."""

    code = "carrier_unavailable"


# ---------------------------------------------------------------------------
# API 노출용
# ---------------------------------------------------------------------------
class InvalidShipmentState(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "invalid shipment state"
    default_code = "invalid_shipment_state"


class OrderNotFound(NotFound):
    default_detail = "order not found"
    default_code = "order_not_found"


class ShipmentNotFound(NotFound):
    default_detail = "shipment not found"
    default_code = "shipment_not_found"
