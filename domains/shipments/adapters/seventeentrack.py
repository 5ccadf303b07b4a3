# domains/shipments/adapters/seventeentrack.py
from __future__ import annotations

from .base import CarrierAdapter, dig


def _as_int(code):
    try:
        return int(code)
    except (TypeError, ValueError):
        return code


class SeventeenTrackAdapter(CarrierAdapter):
    """
    17TRACK 집계 API.
    이벤트 시각은 Unix 초(a), 상태는 숫자 코드. 예상 도착일은 제공하지 않음.
    """

    code = "17track"
    name = "17TRACK"
    aliases = ("17",)
    provides_eta = False

    EVENT_STATUS_MAP = {
        0: "pending",
        10: "in_transit",
        35: "out_for_delivery",
        30: "exception",
        40: "delivered",
        50: "returned",
    }
    STATUS_MAP = EVENT_STATUS_MAP

    def build_request(self, tracking_number, api_key):
        return {
            "method": "POST",
            "path": "/track",
            "json": {"numbers": [tracking_number]},
            "headers": {"17token": api_key},
        }

    def map_event_code(self, code):
        return super().map_event_code(_as_int(code))

    def map_status(self, code):
        return super().map_status(_as_int(code))

    def extract_shipment(self, payload, tracking_number):
        items = payload.get("data")
        if not isinstance(items, list):
            return None
        for item in items:
            if isinstance(item, dict) and item.get("number") == tracking_number:
                return item.get("track") or None
        return None

    def extract_events(self, shipment):
        return shipment.get("z2")

    def extract_status(self, shipment):
        return shipment.get("e")

    def event_fields(self, raw):
        return (raw.get("a"), raw.get("z"), raw.get("c"), raw.get("d"))
