# domains/shipments/adapters/ups.py
from __future__ import annotations

from .base import CarrierAdapter, dig


class UPSAdapter(CarrierAdapter):
    """UPS Track API (trackResponse.shipment[].package[].activity[])"""

    code = "ups"
    name = "UPS"

    # activity.status 는 한 글자 타입 코드
    EVENT_STATUS_MAP = {
        "I": "pending",  # Information received
        "P": "pending",  # Pickup
        "M": "pending",  # Manifest
        "O": "in_transit",
        "D": "delivered",
        "X": "exception",
        "RS": "returned",
    }
    STATUS_MAP = {
        "001": "pending",
        "002": "in_transit",
        "003": "delivered",
        "004": "exception",
        "005": "out_for_delivery",
        "006": "returned",
    }

    def build_request(self, tracking_number, api_key):
        return {
            "method": "GET",
            "path": f"/details/{tracking_number}",
            "headers": {"AccessLicenseNumber": api_key},
        }

    def extract_shipment(self, payload, tracking_number):
        shipments = dig(payload, "trackResponse", "shipment")
        if not isinstance(shipments, list) or not shipments:
            return None
        return shipments[0]

    def extract_events(self, shipment):
        package = shipment.get("package")
        if isinstance(package, list):
            package = package[0] if package else None
        if not isinstance(package, dict):
            return []
        return package.get("activity")

    def extract_status(self, shipment):
        return dig(shipment, "currentStatus", "code")

    def extract_eta(self, shipment):
        eta = shipment.get("deliveryDate")
        if isinstance(eta, list):
            return dig(eta, 0, "date")
        return eta

    def event_fields(self, raw):
        date = raw.get("date") or ""
        tm = raw.get("time") or ""
        when = f"{date} {tm}".strip() if date else None
        status = raw.get("status")
        # 실제 API는 {"type": "D", ...} 객체
        if isinstance(status, dict):
            status = status.get("type")
        return (
            when,
            raw.get("description") or dig(raw, "status", "description", default=""),
            dig(raw, "location", "address", "city", default=""),
            status,
        )
