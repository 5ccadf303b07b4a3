# domains/shipments/adapters/fallback.py
from __future__ import annotations

from datetime import timedelta
from typing import Callable, Optional

from django.utils import timezone

from ..status_map import IN_TRANSIT, PENDING
from .base import CarrierAdapter, CarrierEvent, TrackingResult


class FallbackAdapter(CarrierAdapter):
    """
    등록되지 않은 캐리어 코드용.
    외부 호출 없이 clock 기준의 고정된 결과를 돌려준다 (예외 없음).
    """

    code = "fallback"
    name = "Unknown carrier"

    def __init__(self, carrier_code: str = "", *, clock: Optional[Callable] = None):
        # backend 불필요
        self.backend = None
        self.carrier_code = carrier_code or ""
        self.clock = clock or timezone.now

    def fetch(self, tracking_number: str) -> TrackingResult:
        now = self.clock()
        return TrackingResult(
            carrier=self.carrier_code,
            tracking_number=tracking_number,
            status=PENDING,
            tracking_history=[
                CarrierEvent(
                    timestamp=now,
                    description="Handed over to carrier",
                    status_code=IN_TRANSIT,
                ),
                CarrierEvent(
                    timestamp=now - timedelta(days=1),
                    description="Shipment information received",
                    status_code=PENDING,
                ),
            ],
            estimated_delivery_date=None,
            raw={"synthetic": True, "carrier": self.carrier_code},
        )

    def __repr__(self) -> str:
        return f"<FallbackAdapter carrier={self.carrier_code!r}>"
