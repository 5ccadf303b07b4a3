# domains/shipments/adapters/provider.py
from __future__ import annotations

from typing import Dict, List, Type

from .base import CarrierAdapter
from .cainiao import CainiaoAdapter
from .dhl import DHLAdapter
from .fallback import FallbackAdapter
from .seventeentrack import SeventeenTrackAdapter
from .ups import UPSAdapter
from .yunexpress import YunExpressAdapter

# 어댑터 레지스트리 (표준 코드 → 클래스)
_REGISTRY: Dict[str, Type[CarrierAdapter]] = {}

# 별칭 → 표준 코드
_ALIASES: Dict[str, str] = {}


def _norm(code: str) -> str:
    return (code or "").strip().lower().replace("_", "-").replace(" ", "")


def register_adapter(adapter_cls: Type[CarrierAdapter]) -> None:
    """어댑터 클래스를 코드와 별칭으로 등록."""
    key = _norm(adapter_cls.code)
    _REGISTRY[key] = adapter_cls
    for alias in adapter_cls.aliases:
        _ALIASES[_norm(alias)] = key


for _cls in (DHLAdapter, UPSAdapter, SeventeenTrackAdapter, CainiaoAdapter, YunExpressAdapter):
    register_adapter(_cls)


def resolve(carrier_code: str, *, backend=None) -> CarrierAdapter:
    """
    캐리어 코드/별칭으로 어댑터 인스턴스를 반환.
    모르는 코드나 빈 값이면 FallbackAdapter (예외 없음).
    """
    key = _norm(carrier_code)
    key = _ALIASES.get(key, key)
    cls = _REGISTRY.get(key)
    if cls is None:
        return FallbackAdapter(carrier_code)
    return cls(backend=backend)


get_adapter = resolve


def is_known_carrier(carrier_code: str) -> bool:
    key = _norm(carrier_code)
    return _ALIASES.get(key, key) in _REGISTRY


def known_carriers() -> List[dict]:
    return [
        {"code": cls.code, "name": cls.name, "aliases": list(cls.aliases)}
        for cls in _REGISTRY.values()
    ]
