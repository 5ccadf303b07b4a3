# domains/shipments/adapters/cainiao.py
from __future__ import annotations

from .base import CarrierAdapter


class CainiaoAdapter(CarrierAdapter):
    code = "cainiao"
    name = "Cainiao"
    aliases = ("cn",)

    EVENT_STATUS_MAP = {
        "CREATED": "pending",
        "PICKUP": "pending",
        "TRANSIT": "in_transit",
        "DELIVERING": "out_for_delivery",
        "DELIVERED": "delivered",
        "EXCEPTION": "exception",
        "RETURNED": "returned",
    }
    STATUS_MAP = EVENT_STATUS_MAP

    def build_request(self, tracking_number, api_key):
        return {
            "method": "GET",
            "path": "",
            "params": {"mailNo": tracking_number},
            "headers": {"Authorization": f"Bearer {api_key}"},
        }

    def extract_shipment(self, payload, tracking_number):
        # {"success": false} 또는 data 없음 → 운송장 없음
        if not payload.get("success"):
            return None
        return payload.get("data") or None

    def extract_events(self, shipment):
        return shipment.get("traces")

    def extract_eta(self, shipment):
        return shipment.get("estimatedDeliveryTime")

    def event_fields(self, raw):
        return (
            raw.get("eventTime"),
            raw.get("eventDesc"),
            raw.get("eventLocation"),
            raw.get("eventCode"),
        )
