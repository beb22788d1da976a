"""Project — root of the Project -> Area -> System -> Subsystem -> WorkPackage tree."""

from datetime import datetime, timezone

from fieldprogress.models import db


class Project(db.Model):
    """Construction project; groups areas and activities."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), nullable=False, unique=True)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(
        db.String(30), nullable=False, default="active",
        comment="active | completed | on-hold",
    )

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

    areas = db.relationship("Area", backref="project", lazy="dynamic",
                            cascade="all, delete-orphan")
    activities = db.relationship("Activity", backref="project", lazy="dynamic",
                                 cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        """Serialize project fields for API responses."""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.code}>"
