"""Project (client space) domain model."""

from datetime import datetime, timezone

from portal.models import db

PROJECT_STATUSES = ("active", "on_hold", "completed", "archived")


class Project(db.Model):
    """A client engagement container with its own feature flags and team."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(30), nullable=False, default="active",
        comment="active | on_hold | completed | archived",
    )

    # ── Client contact ──
    client_name = db.Column(db.String(200), nullable=True)
    client_email = db.Column(db.String(255), nullable=True, index=True)
    client_first_name = db.Column(db.String(100), nullable=True)
    client_last_name = db.Column(db.String(100), nullable=True)

    # ── Schedule & presentation ──
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    accent_color = db.Column(db.String(20), nullable=True)
    value = db.Column(db.Float, nullable=False, default=0)
    logo_url = db.Column(db.String(500), nullable=True)

    # ── Feature flags & assignments ──
    # Maps are replaced wholesale on write; never mutate them in place.
    features_enabled = db.Column(db.JSON, nullable=False, default=dict)
    project_manager_ids = db.Column(db.JSON, nullable=False, default=list)
    team_member_ids = db.Column(db.JSON, nullable=False, default=list)
    additional_client_ids = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    timeline_items = db.relationship(
        "TimelineItem", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    testing_cards = db.relationship(
        "TestingCard", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_first_name": self.client_first_name,
            "client_last_name": self.client_last_name,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "accent_color": self.accent_color,
            "value": self.value,
            "logo_url": self.logo_url,
            "features_enabled": dict(self.features_enabled or {}),
            "project_manager_ids": list(self.project_manager_ids or []),
            "team_member_ids": list(self.team_member_ids or []),
            "additional_client_ids": list(self.additional_client_ids or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name} [{self.status}]>"
