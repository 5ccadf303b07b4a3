# domains/shipments/views.py
from __future__ import annotations

import logging

import django_filters as df
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import generics, permissions, status
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from rest_framework.views import APIView

from shared.api_markers import EmptySerializer, ErrorResponseSerializer
from shared.pagination import StandardResultsSetPagination

from . import services
from .adapters import known_carriers
from .exceptions import TrackingFetchError, TrackingNumberNotFound
from .models import Shipment, ShipmentStatus
from .serializers import (
    CarrierSerializer,
    LiveTrackQuerySerializer,
    ShipmentCreateSerializer,
    ShipmentListSerializer,
    ShipmentSerializer,
    ShipmentStatsSerializer,
    ShipmentUpdateSerializer,
    TrackingEventCreateSerializer,
    TrackingEventSerializer,
    TrackingResultSerializer,
)

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------
# 공통: 캐리어 조회 실패 → 응답
#   TrackingNumberNotFound → 404, CarrierUnavailable → 503
# --------------------------------------------------------------------
def _fetch_error_response(e: TrackingFetchError) -> Response:
    if isinstance(e, TrackingNumberNotFound):
        http_status = status.HTTP_404_NOT_FOUND
    else:
        http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    logger.warning("tracking fetch failed (%s %s): %s", e.carrier, e.tracking_number, e)
    return Response({"detail": str(e), "code": e.code}, status=http_status)


_FETCH_ERRORS = {404: ErrorResponseSerializer, 503: ErrorResponseSerializer}


# -------------------------------
# Filters (admin listing)
# -------------------------------
class ShipmentFilter(df.FilterSet):
    status = df.ChoiceFilter(choices=ShipmentStatus.choices)
    carrier = df.CharFilter(lookup_expr="icontains")
    tracking_number = df.CharFilter(lookup_expr="icontains")
    shipped_from = df.IsoDateTimeFilter(field_name="shipped_at", lookup_expr="gte")
    shipped_to = df.IsoDateTimeFilter(field_name="shipped_at", lookup_expr="lte")

    class Meta:
        model = Shipment
        fields = ["status", "carrier", "tracking_number", "shipped_from", "shipped_to"]


# --------------------------------------------------------------------
# GET  /api/v1/shipments/   (관리자 목록, 필터/정렬/페이징)
# POST /api/v1/shipments/   (관리자 등록)
# --------------------------------------------------------------------
class ShipmentListCreateAPI(generics.ListCreateAPIView):
    queryset = Shipment.objects.all().order_by("-created_at")
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ShipmentFilter
    ordering_fields = ["created_at", "shipped_at", "last_updated"]
    pagination_class = StandardResultsSetPagination

    def get_serializer_class(self):
        return ShipmentCreateSerializer if self.request.method == "POST" else ShipmentListSerializer

    @extend_schema(operation_id="ListShipments")
    def get(self, *args, **kwargs):
        return super().get(*args, **kwargs)

    @extend_schema(
        operation_id="CreateShipment",
        request=ShipmentCreateSerializer,
        responses={201: ShipmentSerializer},
    )
    def post(self, request, *args, **kwargs):
        ser = ShipmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        shipment = services.create_shipment(**ser.validated_data)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_201_CREATED)


# --------------------------------------------------------------------
# GET /api/v1/shipments/stats/?days=7
# --------------------------------------------------------------------
class ShipmentStatsAPI(APIView):
    permission_classes = [permissions.IsAdminUser]

    @extend_schema(
        operation_id="ShipmentStats",
        parameters=[
            OpenApiParameter(name="days", required=False, type=int, description="trailing window (days)"),
        ],
        responses={200: ShipmentStatsSerializer},
    )
    def get(self, request):
        try:
            days = int(request.query_params.get("days") or 7)
        except ValueError:
            return Response({"detail": "days는 정수여야 합니다."}, status=status.HTTP_400_BAD_REQUEST)
        days = max(min(days, 365), 1)

        data = services.shipment_stats(days=days)
        return Response(ShipmentStatsSerializer(data).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# GET /api/v1/shipments/carriers/
# --------------------------------------------------------------------
class CarrierListAPI(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(operation_id="ListCarriers", responses={200: CarrierSerializer(many=True)})
    def get(self, request):
        return Response(CarrierSerializer(known_carriers(), many=True).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# GET /api/v1/shipments/track/?carrier=dhl&tracking_number=...
# 저장 없이 실시간 조회 (정규화된 결과)
# --------------------------------------------------------------------
class LiveTrackAPI(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        operation_id="TrackLive",
        parameters=[
            OpenApiParameter(name="carrier", required=True, type=str),
            OpenApiParameter(name="tracking_number", required=True, type=str),
        ],
        responses={200: TrackingResultSerializer, **_FETCH_ERRORS},
    )
    def get(self, request):
        query = LiveTrackQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            result = services.track_live(
                query.validated_data["carrier"], query.validated_data["tracking_number"]
            )
        except TrackingFetchError as e:
            return _fetch_error_response(e)
        return Response(TrackingResultSerializer(result).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# GET /api/v1/shipments/track/{tracking_number}/   (저장된 건, stale 이면 갱신)
# --------------------------------------------------------------------
class ShipmentByTrackingNumberAPI(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(operation_id="GetShipmentByTrackingNumber", responses={200: ShipmentSerializer, **_FETCH_ERRORS})
    def get(self, request, tracking_number: str):
        try:
            shipment = services.get_shipment_by_tracking_number(tracking_number)
        except TrackingFetchError as e:
            return _fetch_error_response(e)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# GET /api/v1/shipments/order/{order_id}/
# --------------------------------------------------------------------
class ShipmentByOrderAPI(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(operation_id="GetShipmentByOrder", responses={200: ShipmentSerializer, **_FETCH_ERRORS})
    def get(self, request, order_id):
        try:
            shipment = services.get_shipment_for_order(order_id)
        except TrackingFetchError as e:
            return _fetch_error_response(e)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# GET   /api/v1/shipments/{id}/   (상세)
# PATCH /api/v1/shipments/{id}/   (관리자 수정, 상태 변경 포함)
# --------------------------------------------------------------------
class ShipmentDetailAPI(APIView):
    def get_permissions(self):
        if self.request.method == "PATCH":
            return [permissions.IsAdminUser()]
        return [permissions.IsAuthenticated()]

    @extend_schema(operation_id="GetShipment", responses={200: ShipmentSerializer, **_FETCH_ERRORS})
    def get(self, request, id):
        try:
            shipment = services.get_shipment(id)
        except TrackingFetchError as e:
            return _fetch_error_response(e)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="UpdateShipment",
        request=ShipmentUpdateSerializer,
        responses={200: ShipmentSerializer},
    )
    def patch(self, request, id):
        ser = ShipmentUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        shipment = services.update_shipment(id, **ser.validated_data)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# POST /api/v1/shipments/{id}/refresh/   (staleness 무시, 실패는 그대로 응답)
# --------------------------------------------------------------------
class ShipmentRefreshAPI(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        operation_id="RefreshShipment",
        request=EmptySerializer,
        responses={200: ShipmentSerializer, **_FETCH_ERRORS},
    )
    def post(self, request, id):
        try:
            shipment = services.force_refresh(id)
        except TrackingFetchError as e:
            return _fetch_error_response(e)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# POST /api/v1/shipments/{id}/events/   (관리자 수동 이벤트)
# body: {description, location, status_code?, occurred_at?}
# --------------------------------------------------------------------
class ShipmentEventCreateAPI(APIView):
    permission_classes = [permissions.IsAdminUser]

    @extend_schema(
        operation_id="AddShipmentEvent",
        request=TrackingEventCreateSerializer,
        responses={201: dict},
    )
    def post(self, request, id):
        ser = TrackingEventCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        shipment, event = services.add_tracking_event(id, **ser.validated_data)
        body = {
            "event": TrackingEventSerializer(event).data,
            "shipment_status": shipment.status,
        }
        return Response(body, status=status.HTTP_201_CREATED)
