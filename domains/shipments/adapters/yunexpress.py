# domains/shipments/adapters/yunexpress.py
from __future__ import annotations

from .base import CarrierAdapter


class YunExpressAdapter(CarrierAdapter):
    code = "yunexpress"
    name = "YunExpress"
    aliases = ("yun", "yuntu")

    EVENT_STATUS_MAP = {
        "INFO_RECEIVED": "pending",
        "IN_TRANSIT": "in_transit",
        "OUT_FOR_DELIVERY": "out_for_delivery",
        "DELIVERED": "delivered",
        "EXCEPTION": "exception",
        "RETURNED": "returned",
    }
    # 운송장 레벨 상태는 CamelCase
    STATUS_MAP = {
        "InfoReceived": "pending",
        "InTransit": "in_transit",
        "OutForDelivery": "out_for_delivery",
        "Delivered": "delivered",
        "Exception": "exception",
        "Returned": "returned",
    }

    def build_request(self, tracking_number, api_key):
        return {
            "method": "GET",
            "path": f"/{tracking_number}",
            "headers": {"Authorization": f"Bearer {api_key}"},
        }

    def extract_shipment(self, payload, tracking_number):
        if not payload.get("success"):
            return None
        return payload.get("data") or None

    def extract_events(self, shipment):
        return shipment.get("trackingDetails")

    def extract_eta(self, shipment):
        return shipment.get("estimatedDeliveryDate")

    def event_fields(self, raw):
        return (
            raw.get("scanDate"),
            raw.get("scanDescription"),
            raw.get("scanLocation"),
            raw.get("scanType"),
        )
