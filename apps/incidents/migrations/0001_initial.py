import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IncidentSequence",
            fields=[
                ("name", models.CharField(max_length=50, primary_key=True, serialize=False)),
                ("value", models.BigIntegerField(default=0)),
            ],
        ),
        migrations.CreateModel(
            name="Incident",
            fields=[
                (
                    "id",
                    models.CharField(
                        editable=False,
                        help_text="Incident ID (INC-<created timestamp>-<sequence>).",
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("description", models.TextField(help_text="What is going wrong.")),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("P0", "P0 - Critical"),
                            ("P1", "P1 - High"),
                            ("P2", "P2 - Medium"),
                            ("P3", "P3 - Low"),
                        ],
                        db_index=True,
                        max_length=2,
                    ),
                ),
                (
                    "service",
                    models.CharField(db_index=True, help_text="Affected service.", max_length=255),
                ),
                (
                    "reporter",
                    models.CharField(help_text="Who reported the incident.", max_length=255),
                ),
                (
                    "team",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Owning team in the on-call directory (blank uses the default profile).",
                        max_length=100,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("investigating", "Investigating"),
                            ("resolved", "Resolved"),
                            ("closed", "Closed"),
                        ],
                        db_index=True,
                        default="open",
                        max_length=20,
                    ),
                ),
                ("last_event_seq", models.PositiveIntegerField(default=0)),
                (
                    "created_at",
                    models.DateTimeField(db_index=True, help_text="When the incident was reported."),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "severity"], name="incident_status_severity_idx")
                ],
            },
        ),
        migrations.CreateModel(
            name="TimelineEvent",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("sequence", models.PositiveIntegerField(help_text="1-based position in the incident's timeline.")),
                ("timestamp", models.DateTimeField()),
                (
                    "action_type",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("notified", "Notified"),
                            ("escalated", "Escalated"),
                            ("status_changed", "Status changed"),
                            ("resolved", "Resolved"),
                            ("note", "Note"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "incident",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="incidents.incident",
                    ),
                ),
            ],
            options={
                "ordering": ["incident", "sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("incident", "sequence"), name="unique_timeline_sequence"
                    )
                ],
            },
        ),
    ]
