"""
Activity (leaf unit of trackable work) and its progress records.

activity_progress holds the latest aggregate per activity (accumulated
quantity and completion fraction); progress_entries is the append-only
daily capture log that feeds it.
"""

from datetime import date, datetime, timezone

from fieldprogress.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Activity(db.Model):
    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    work_package_id = db.Column(
        db.Integer,
        db.ForeignKey("work_packages.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="")
    boq_qty = db.Column(db.Float, nullable=False, default=0.0, comment="Planned BOQ quantity")
    weight = db.Column(db.Float, nullable=False, default=0.0, comment="Relative rollup weight")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    progress = db.relationship(
        "ActivityProgress", backref="activity", uselist=False,
        cascade="all, delete-orphan",
    )
    entries = db.relationship(
        "ProgressEntry", backref="activity", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.UniqueConstraint("project_id", "code", name="uq_activities_project_code"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "work_package_id": self.work_package_id,
            "code": self.code,
            "name": self.name,
            "unit": self.unit,
            "boq_qty": self.boq_qty,
            "weight": self.weight,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<Activity {self.id}: {self.code}>"


class ActivityProgress(db.Model):
    __tablename__ = "activity_progress"

    activity_id = db.Column(
        db.Integer,
        db.ForeignKey("activities.id", ondelete="CASCADE"),
        primary_key=True,
    )
    qty_accum = db.Column(db.Float, nullable=False, default=0.0)
    pct = db.Column(db.Float, nullable=False, default=0.0, comment="Completion fraction 0..1")
    last_updated = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "activity_id": self.activity_id,
            "qty_accum": self.qty_accum,
            "pct": self.pct,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class ProgressEntry(db.Model):
    __tablename__ = "progress_entries"

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(
        db.Integer,
        db.ForeignKey("activities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry_date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    qty_today = db.Column(db.Float, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "entry_date": self.entry_date.isoformat() if self.entry_date else None,
            "qty_today": self.qty_today,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
