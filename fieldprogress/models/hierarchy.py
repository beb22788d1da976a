"""
Grouping levels between Project and Activity.

Area -> System -> Subsystem -> WorkPackage. These rows carry identity and
membership only; progress is always derived from the activities below them.
"""

from datetime import datetime, timezone

from fieldprogress.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Area(db.Model):
    __tablename__ = "areas"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    systems = db.relationship("System", backref="area", lazy="dynamic",
                              cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("project_id", "code", name="uq_areas_project_code"),
    )

    def __repr__(self) -> str:
        return f"<Area {self.id}: {self.code}>"


class System(db.Model):
    __tablename__ = "systems"

    id = db.Column(db.Integer, primary_key=True)
    area_id = db.Column(
        db.Integer,
        db.ForeignKey("areas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    subsystems = db.relationship("Subsystem", backref="system", lazy="dynamic",
                                 cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("area_id", "code", name="uq_systems_area_code"),
    )

    def __repr__(self) -> str:
        return f"<System {self.id}: {self.code}>"


class Subsystem(db.Model):
    __tablename__ = "subsystems"

    id = db.Column(db.Integer, primary_key=True)
    system_id = db.Column(
        db.Integer,
        db.ForeignKey("systems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    work_packages = db.relationship("WorkPackage", backref="subsystem", lazy="dynamic",
                                    cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("system_id", "code", name="uq_subsystems_system_code"),
    )

    def __repr__(self) -> str:
        return f"<Subsystem {self.id}: {self.code}>"


class WorkPackage(db.Model):
    __tablename__ = "work_packages"

    id = db.Column(db.Integer, primary_key=True)
    subsystem_id = db.Column(
        db.Integer,
        db.ForeignKey("subsystems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    contractor = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    activities = db.relationship("Activity", backref="work_package", lazy="dynamic")

    __table_args__ = (
        db.UniqueConstraint("subsystem_id", "code", name="uq_work_packages_subsystem_code"),
    )

    def __repr__(self) -> str:
        return f"<WorkPackage {self.id}: {self.code}>"
