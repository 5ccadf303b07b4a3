from django.urls import path

from .views import (
    CarrierListAPI,
    LiveTrackAPI,
    ShipmentByOrderAPI,
    ShipmentByTrackingNumberAPI,
    ShipmentDetailAPI,
    ShipmentEventCreateAPI,
    ShipmentListCreateAPI,
    ShipmentRefreshAPI,
    ShipmentStatsAPI,
)

app_name = "shipments"

urlpatterns = [
    # 목록/등록
    path("", ShipmentListCreateAPI.as_view(), name="shipment-list"),
    # 정적 경로: 트레일링 슬래시 필수!
    path("stats/", ShipmentStatsAPI.as_view(), name="shipment-stats"),
    path("carriers/", CarrierListAPI.as_view(), name="carrier-list"),
    path("track/", LiveTrackAPI.as_view(), name="shipment-track-live"),
    path(
        "track/<str:tracking_number>/",
        ShipmentByTrackingNumberAPI.as_view(),
        name="shipment-by-tracking-number",
    ),
    path("order/<uuid:order_id>/", ShipmentByOrderAPI.as_view(), name="shipment-by-order"),
    # 상세
    path("<uuid:id>/", ShipmentDetailAPI.as_view(), name="shipment-detail"),
    path("<uuid:id>/refresh/", ShipmentRefreshAPI.as_view(), name="shipment-refresh"),
    path("<uuid:id>/events/", ShipmentEventCreateAPI.as_view(), name="shipment-events"),
]
