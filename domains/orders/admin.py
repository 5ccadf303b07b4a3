# domains/orders/admin.py
from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "status",
        "shipped_at",
        "delivered_at",
        "created_at",
    )
    list_filter = ("status", "created_at")
    search_fields = ("id", "user__email", "user__username")
    ordering = ("-created_at",)
    readonly_fields = ("shipped_at", "delivered_at", "created_at", "updated_at")
