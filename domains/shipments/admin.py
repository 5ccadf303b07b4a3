from __future__ import annotations

from django.contrib import admin
from django.utils.html import format_html

from . import models


# ---------- Inline: 이벤트 / 상태 이력 (읽기 전용) ----------
class TrackingEventInline(admin.TabularInline):
    model = models.TrackingEvent
    extra = 0
    can_delete = False
    fields = ("occurred_at", "status", "location", "description", "source")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class StatusHistoryInline(admin.TabularInline):
    model = models.StatusHistoryEntry
    extra = 0
    can_delete = False
    fields = ("changed_at", "from_status", "to_status", "source", "note")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


# ---------- Shipment Admin ----------
@admin.register(models.Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    inlines = [TrackingEventInline, StatusHistoryInline]

    list_display = (
        "id",
        "order",
        "carrier",
        "tracking_number",
        "status",
        "last_updated",
        "delivered_at",
        "created_at",
    )
    list_filter = ("status", "carrier")
    search_fields = ("id", "tracking_number", "carrier", "order__id")
    ordering = ("-created_at",)

    # 상태/배송완료는 API(상태 전이 + 부수효과)로만 변경
    readonly_fields = (
        "id",
        "status",
        "delivered_at",
        "last_updated",
        "raw_response_display",
        "created_at",
        "updated_at",
    )
    exclude = ("raw_carrier_response",)

    def raw_response_display(self, obj):
        if obj.raw_carrier_response is None:
            return "-"
        return format_html("<pre style='white-space:pre-wrap'>{}</pre>", obj.raw_carrier_response)
    raw_response_display.short_description = "Raw carrier response"


# ---------- TrackingEvent Admin ----------
@admin.register(models.TrackingEvent)
class TrackingEventAdmin(admin.ModelAdmin):
    list_display = ("id", "shipment", "occurred_at", "status", "location", "source")
    list_filter = ("status", "source")
    search_fields = ("description", "shipment__tracking_number")
    ordering = ("-id",)
