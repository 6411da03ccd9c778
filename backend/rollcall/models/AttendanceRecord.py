from datetime import datetime
from rollcall.extensions import db
from .base import TimestampMixin, StatusEnum

class AttendanceRecord(db.Model, TimestampMixin):
    __tablename__ = 'attendance_records'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    subject = db.Column(db.String(120), nullable=False)
    session = db.Column(db.String(120), nullable=False)  # e.g. 'Period 1'

    school_class = db.relationship('SchoolClass', back_populates='attendance_records')
    entries = db.relationship('AttendanceEntry', back_populates='record', order_by='AttendanceEntry.position',
                              cascade="all, delete-orphan", lazy='selectin')

    __table_args__ = (
        db.UniqueConstraint('class_id', 'date', 'subject', 'session', name='uq_attendance_tuple'),
    )

    def status_for(self, student_id):
        for entry in self.entries:
            if entry.student_id == student_id:
                return entry.status
        return None

    def to_dict(self):
        return {
            "id": self.id,
            "class_id": self.class_id,
            "date": self.date.isoformat(),
            "subject": self.subject,
            "session": self.session,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "entries": [e.to_dict() for e in self.entries],
        }


class AttendanceEntry(db.Model):
    __tablename__ = 'attendance_entries'

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey('attendance_records.id', ondelete='CASCADE'), nullable=False)
    student_id = db.Column(db.Integer, nullable=False, index=True)  # entries outlive deleted users
    status = db.Column(db.Enum(StatusEnum), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    record = db.relationship('AttendanceRecord', back_populates='entries')

    __table_args__ = (
        db.UniqueConstraint('record_id', 'student_id', name='uq_entry_student'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "status": self.status.value,
        }
