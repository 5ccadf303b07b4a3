from typing import Literal

CanonicalStatus = Literal[
    "pending",
    "in_transit",
    "out_for_delivery",
    "delivered",
    "exception",
    "returned",
    "unknown",
]

PENDING = "pending"
IN_TRANSIT = "in_transit"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERED = "delivered"
EXCEPTION = "exception"
RETURNED = "returned"
UNKNOWN = "unknown"

CANONICAL_STATUSES = (
    PENDING,
    IN_TRANSIT,
    OUT_FOR_DELIVERY,
    DELIVERED,
    EXCEPTION,
    RETURNED,
    UNKNOWN,
)

# 배송 완료 부수효과 판단용 (전이를 막지는 않음)
TERMINAL_STATUSES = frozenset({DELIVERED, RETURNED})

# 구분자 없이 들어오는 값 보정
_ALIASES = {
    "intransit": IN_TRANSIT,
    "outfordelivery": OUT_FOR_DELIVERY,
}


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def normalize_status(value) -> CanonicalStatus:
    """
    수동 입력 등 느슨한 값을 표준 상태로 정규화.
    "In-Transit", "in transit", "intransit" → "in_transit"
    모르는 값은 예외 대신 "unknown".
    """
    s = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if s in CANONICAL_STATUSES:
        return s
    return _ALIASES.get(s.replace("_", ""), UNKNOWN)


def map_code(table, code) -> CanonicalStatus:
    """캐리어 코드 테이블 조회. 미등록 코드는 항상 "unknown"."""
    if code is None:
        return UNKNOWN
    try:
        return table.get(code, UNKNOWN)
    except TypeError:
        # dict/list 같은 unhashable 코드
        return UNKNOWN
