"""
Timeline models.

    TimelineTemplate       — reusable blueprint (admin managed)
    TimelineTemplateItem   — blueprint step, dated by offset from project start
    TimelineItem           — concrete dated step inside one project

Template items and timeline items both form a tree through parent_id,
always within the same template / project.
"""

from datetime import datetime, timezone

from portal.models import db


class TimelineTemplate(db.Model):
    """Reusable timeline blueprint."""
    __tablename__ = "timeline_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=False, default="General")
    color = db.Column(db.String(20), nullable=False, default="#3b82f6")
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    items = db.relationship(
        "TimelineTemplateItem", backref="template", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "color": self.color,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class TimelineTemplateItem(db.Model):
    """One step of a template; due date is start date + default_offset_days."""
    __tablename__ = "timeline_template_items"

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(
        db.Integer,
        db.ForeignKey("timeline_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    default_offset_days = db.Column(db.Integer, nullable=False, default=0)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey("timeline_template_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "default_offset_days": self.default_offset_days,
            "parent_id": self.parent_id,
        }


class TimelineItem(db.Model):
    """Dated milestone/task belonging to a project."""
    __tablename__ = "timeline_items"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    assigned_to = db.Column(db.String(100), nullable=True)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey("timeline_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "is_completed": self.is_completed,
            "order": self.order,
            "assigned_to": self.assigned_to,
            "parent_id": self.parent_id,
        }
