from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class ShipmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_TRANSIT = "in_transit", "In Transit"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out For Delivery"
    DELIVERED = "delivered", "Delivered"
    EXCEPTION = "exception", "Exception"
    RETURNED = "returned", "Returned"
    UNKNOWN = "unknown", "Unknown"


class EventSource(models.TextChoices):
    CARRIER = "carrier", "Carrier"
    MANUAL = "manual", "Manual"


class HistorySource(models.TextChoices):
    CREATED = "created", "Created"
    REFRESH = "refresh", "Refresh"
    MANUAL = "manual", "Manual"
    EVENT = "event", "Event"


class Shipment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # 주문당 배송 1건: DB 유니크 제약으로 보장
    order = models.OneToOneField(
        "orders.Order", on_delete=models.CASCADE, related_name="shipment"
    )

    carrier = models.CharField(max_length=40)
    tracking_number = models.CharField(max_length=64, db_index=True)

    status = models.CharField(
        max_length=24,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
    )

    shipped_at = models.DateTimeField(default=timezone.now)
    estimated_delivery_at = models.DateTimeField(null=True, blank=True)
    # 최초 delivered 전이 시 1회만 기록
    delivered_at = models.DateTimeField(null=True, blank=True)

    # 마지막 캐리어 조회 성공 또는 수동 수정 시각 (staleness 기준)
    last_updated = models.DateTimeField(null=True, blank=True)

    # 진단용 원본 응답. 로직에서 파싱하지 않음
    raw_carrier_response = models.JSONField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["carrier"], name="shipments_carrier_idx"),
            models.Index(
                fields=["status", "last_updated"], name="shipments_status_upd_idx"
            ),
            models.Index(fields=["shipped_at"], name="shipments_shipped_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.carrier}:{self.tracking_number}"


class TrackingEvent(models.Model):
    id = models.BigAutoField(primary_key=True)

    shipment = models.ForeignKey(
        Shipment, on_delete=models.CASCADE, related_name="tracking_events"
    )
    occurred_at = models.DateTimeField()
    description = models.TextField(blank=True, default="")
    location = models.CharField(max_length=120, blank=True, default="")
    status = models.CharField(
        max_length=24, choices=ShipmentStatus.choices, default=ShipmentStatus.UNKNOWN
    )
    source = models.CharField(
        max_length=10, choices=EventSource.choices, default=EventSource.CARRIER
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-occurred_at", "-id")
        indexes = [
            models.Index(
                fields=["shipment", "occurred_at"], name="shipments_evt_occ_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.shipment_id}@{self.occurred_at}"


class StatusHistoryEntry(models.Model):
    id = models.BigAutoField(primary_key=True)

    shipment = models.ForeignKey(
        Shipment, on_delete=models.CASCADE, related_name="status_history"
    )
    # 생성 시 첫 항목은 from_status 공백
    from_status = models.CharField(
        max_length=24, choices=ShipmentStatus.choices, blank=True, default=""
    )
    to_status = models.CharField(max_length=24, choices=ShipmentStatus.choices)
    changed_at = models.DateTimeField(default=timezone.now)
    note = models.CharField(max_length=200, blank=True, default="")
    source = models.CharField(
        max_length=10, choices=HistorySource.choices, default=HistorySource.REFRESH
    )

    class Meta:
        ordering = ("changed_at", "id")
        verbose_name_plural = "status history entries"

    def __str__(self) -> str:
        return f"{self.shipment_id}: {self.from_status or '-'} -> {self.to_status}"
