# domains/shipments/adapters/dhl.py
from __future__ import annotations

from .base import CarrierAdapter, dig


class DHLAdapter(CarrierAdapter):
    """DHL Shipment Tracking (unified) 응답 구조"""

    code = "dhl"
    name = "DHL Express"

    EVENT_STATUS_MAP = {
        "pre-transit": "pending",
        "transit": "in_transit",
        "out-for-delivery": "out_for_delivery",
        "delivered": "delivered",
        "failure": "exception",
        "returned": "returned",
        "unknown": "unknown",
    }
    STATUS_MAP = {
        "pre-transit": "pending",
        "transit": "in_transit",
        "shipping": "in_transit",
        "out-for-delivery": "out_for_delivery",
        "delivered": "delivered",
        "failure": "exception",
        "returned": "returned",
    }

    def build_request(self, tracking_number, api_key):
        return {
            "method": "GET",
            "path": "/shipments",
            "params": {"trackingNumber": tracking_number},
            "headers": {"DHL-API-Key": api_key},
        }

    def extract_shipment(self, payload, tracking_number):
        shipments = payload.get("shipments")
        if not isinstance(shipments, list) or not shipments:
            return None
        # id가 있으면 운송장 번호로 매칭, 없으면 첫 건
        for s in shipments:
            if isinstance(s, dict) and s.get("id") == tracking_number:
                return s
        return shipments[0]

    def extract_status(self, shipment):
        status = shipment.get("status")
        # 실제 API는 {"statusCode": "transit", ...} 객체로 내려오기도 함
        if isinstance(status, dict):
            return status.get("statusCode")
        return status

    def extract_eta(self, shipment):
        return shipment.get("estimatedDeliveryDate") or shipment.get("estimatedTimeOfDelivery")

    def event_fields(self, raw):
        return (
            raw.get("timestamp"),
            raw.get("description"),
            dig(raw, "location", "address", "addressLocality", default=""),
            raw.get("statusCode"),
        )
