from datetime import datetime
from rollcall.extensions import db
import enum

class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def touch(self):
        self.updated_at = datetime.utcnow()

class RoleEnum(enum.Enum):
    admin = "admin"
    teacher = "teacher"
    student = "student"

class StatusEnum(enum.Enum):
    present = "Present"
    absent = "Absent"

    @classmethod
    def parse(cls, value):
        """Accept 'Present'/'Absent' in any case; raise ValueError otherwise."""
        if isinstance(value, cls):
            return value
        for status in cls:
            if str(value).strip().lower() == status.value.lower():
                return status
        raise ValueError(f"Invalid status '{value}'")
