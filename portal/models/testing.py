"""Testing sign-off cards shown to clients inside a project."""

from portal.models import db


class TestingCard(db.Model):
    """A deliverable the client reviews and signs off."""
    __tablename__ = "testing_cards"
    __test__ = False  # keep pytest from collecting this as a test class

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "is_completed": self.is_completed,
            "order": self.order,
        }
