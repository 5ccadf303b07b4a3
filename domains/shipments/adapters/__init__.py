# domains/shipments/adapters/__init__.py
from .base import CarrierAdapter, CarrierEvent, TrackingResult
from .fallback import FallbackAdapter
from .provider import get_adapter, is_known_carrier, known_carriers, resolve

__all__ = [
    "CarrierAdapter",
    "CarrierEvent",
    "TrackingResult",
    "FallbackAdapter",
    "get_adapter",
    "is_known_carrier",
    "known_carriers",
    "resolve",
]
