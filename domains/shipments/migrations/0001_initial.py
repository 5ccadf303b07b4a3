import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

STATUS_CHOICES = [
    ("pending", "Pending"),
    ("in_transit", "In Transit"),
    ("out_for_delivery", "Out For Delivery"),
    ("delivered", "Delivered"),
    ("exception", "Exception"),
    ("returned", "Returned"),
    ("unknown", "Unknown"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Shipment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("carrier", models.CharField(max_length=40)),
                ("tracking_number", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES, default="pending", max_length=24
                    ),
                ),
                (
                    "shipped_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("estimated_delivery_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("last_updated", models.DateTimeField(blank=True, null=True)),
                ("raw_carrier_response", models.JSONField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shipment",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["carrier"], name="shipments_carrier_idx"),
                    models.Index(
                        fields=["status", "last_updated"],
                        name="shipments_status_upd_idx",
                    ),
                    models.Index(fields=["shipped_at"], name="shipments_shipped_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TrackingEvent",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("occurred_at", models.DateTimeField()),
                ("description", models.TextField(blank=True, default="")),
                ("location", models.CharField(blank=True, default="", max_length=120)),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES, default="unknown", max_length=24
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("carrier", "Carrier"), ("manual", "Manual")],
                        default="carrier",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "shipment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tracking_events",
                        to="shipments.shipment",
                    ),
                ),
            ],
            options={
                "ordering": ("-occurred_at", "-id"),
                "indexes": [
                    models.Index(
                        fields=["shipment", "occurred_at"],
                        name="shipments_evt_occ_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="StatusHistoryEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "from_status",
                    models.CharField(
                        blank=True, choices=STATUS_CHOICES, default="", max_length=24
                    ),
                ),
                (
                    "to_status",
                    models.CharField(choices=STATUS_CHOICES, max_length=24),
                ),
                (
                    "changed_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("note", models.CharField(blank=True, default="", max_length=200)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("refresh", "Refresh"),
                            ("manual", "Manual"),
                            ("event", "Event"),
                        ],
                        default="refresh",
                        max_length=10,
                    ),
                ),
                (
                    "shipment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="shipments.shipment",
                    ),
                ),
            ],
            options={
                "ordering": ("changed_at", "id"),
                "verbose_name_plural": "status history entries",
            },
        ),
    ]
