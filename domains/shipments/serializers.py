from __future__ import annotations

from rest_framework import serializers

from .models import Shipment, ShipmentStatus, StatusHistoryEntry, TrackingEvent


# ---------------------------
# 출력용
# ---------------------------
class TrackingEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrackingEvent
        fields = ("id", "occurred_at", "description", "location", "status", "source")


class StatusHistoryEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = StatusHistoryEntry
        fields = ("id", "from_status", "to_status", "changed_at", "note", "source")


class ShipmentListSerializer(serializers.ModelSerializer):
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Shipment
        fields = (
            "id",
            "order_id",
            "carrier",
            "tracking_number",
            "status",
            "shipped_at",
            "estimated_delivery_at",
            "delivered_at",
            "last_updated",
            "created_at",
        )


class ShipmentSerializer(ShipmentListSerializer):
    tracking_events = TrackingEventSerializer(many=True, read_only=True)
    status_history = StatusHistoryEntrySerializer(many=True, read_only=True)

    class Meta(ShipmentListSerializer.Meta):
        fields = ShipmentListSerializer.Meta.fields + (
            "notes",
            "updated_at",
            "tracking_events",
            "status_history",
        )


# 저장하지 않는 실시간 조회 결과 (TrackingResult dataclass)
class CarrierEventOutSerializer(serializers.Serializer):
    timestamp = serializers.DateTimeField()
    description = serializers.CharField()
    location = serializers.CharField()
    status_code = serializers.CharField()


class TrackingResultSerializer(serializers.Serializer):
    carrier = serializers.CharField()
    tracking_number = serializers.CharField()
    status = serializers.CharField()
    estimated_delivery_date = serializers.DateTimeField(allow_null=True)
    tracking_history = CarrierEventOutSerializer(many=True)


class CarrierSerializer(serializers.Serializer):
    code = serializers.CharField()
    name = serializers.CharField()
    aliases = serializers.ListField(child=serializers.CharField())


class CountByStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    count = serializers.IntegerField()


class CountByCarrierSerializer(serializers.Serializer):
    carrier = serializers.CharField()
    count = serializers.IntegerField()


class DailyCountSerializer(serializers.Serializer):
    date = serializers.DateField()
    count = serializers.IntegerField()


class ShipmentStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    days = serializers.IntegerField()
    by_status = CountByStatusSerializer(many=True)
    by_carrier = CountByCarrierSerializer(many=True)
    daily = DailyCountSerializer(many=True)


# ---------------------------
# 입력용
# ---------------------------
class ShipmentCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    carrier = serializers.CharField(max_length=40)
    tracking_number = serializers.CharField(max_length=64)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    shipped_at = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate_carrier(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("carrier는 필수입니다.")
        return value

    def validate_tracking_number(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("tracking_number는 필수입니다.")
        return value


class ShipmentUpdateSerializer(serializers.Serializer):
    carrier = serializers.CharField(max_length=40, required=False)
    tracking_number = serializers.CharField(max_length=64, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    estimated_delivery_at = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=ShipmentStatus.choices, required=False)
    status_note = serializers.CharField(
        max_length=200, required=False, allow_blank=True, default=""
    )

    def validate(self, attrs):
        editable = {"carrier", "tracking_number", "notes", "estimated_delivery_at", "status"}
        if not editable & set(attrs):
            raise serializers.ValidationError("수정할 필드가 없습니다.")
        return attrs


class TrackingEventCreateSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(
        max_length=120, required=False, allow_blank=True, default=""
    )
    # 표준 상태값 또는 캐리어 고유 코드 (선택)
    status_code = serializers.CharField(
        max_length=40, required=False, allow_blank=True, allow_null=True, default=None
    )
    occurred_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


class LiveTrackQuerySerializer(serializers.Serializer):
    carrier = serializers.CharField()
    tracking_number = serializers.CharField()
