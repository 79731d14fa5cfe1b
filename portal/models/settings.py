"""
Global Settings Model

Single platform-wide row holding the on/off state of every feature.
Per-project flags live on Project.features_enabled and are gated by
these values (see services.feature_flag_service).
"""

from datetime import datetime, timezone

from portal.models import db

# Feature keys an administrator can switch platform-wide.
GLOBAL_FEATURE_KEYS = ("chat", "files", "timeline", "testing", "response_bot", "obeya", "wiki")

# Feature keys carried in every project's own features_enabled map.
PROJECT_FEATURE_KEYS = ("chat", "files", "timeline", "testing", "response_bot")

FEATURE_LABELS = {
    "chat": "Chat & Messaging",
    "files": "File Management",
    "timeline": "Timeline & Milestones",
    "testing": "Testing & Sign-off",
    "response_bot": "AI Support Bot",
    "obeya": "Obeya Boards",
    "wiki": "Knowledge Wiki",
}


def column_for(feature_key: str) -> str:
    """Return the GlobalSettings column name for a feature key."""
    return f"{feature_key}_enabled"


class GlobalSettings(db.Model):
    """Platform-wide feature switches (singleton row)."""
    __tablename__ = "global_settings"

    id = db.Column(db.Integer, primary_key=True)
    chat_enabled = db.Column(db.Boolean, nullable=False, default=True)
    files_enabled = db.Column(db.Boolean, nullable=False, default=True)
    timeline_enabled = db.Column(db.Boolean, nullable=False, default=True)
    testing_enabled = db.Column(db.Boolean, nullable=False, default=True)
    response_bot_enabled = db.Column(db.Boolean, nullable=False, default=True)
    obeya_enabled = db.Column(db.Boolean, nullable=False, default=True)
    wiki_enabled = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def flag(self, feature_key: str):
        """Return the stored value for a feature key (None if never set)."""
        return getattr(self, column_for(feature_key))

    def set_flag(self, feature_key: str, value: bool) -> None:
        setattr(self, column_for(feature_key), bool(value))

    def to_dict(self):
        data = {"id": self.id}
        for key in GLOBAL_FEATURE_KEYS:
            data[column_for(key)] = self.flag(key)
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data
