from rollcall.extensions import db
from .base import TimestampMixin

class_students = db.Table(
    'class_students',
    db.Column('class_id', db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)

class SchoolClass(db.Model, TimestampMixin):
    __tablename__ = 'classes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    subjects = db.Column(db.JSON, nullable=False, default=list)

    teacher = db.relationship('User', back_populates='taught_classes')
    students = db.relationship('User', secondary=class_students, lazy='selectin', order_by='User.id',
                               backref=db.backref('enrolled_classes', lazy=True))
    attendance_records = db.relationship('AttendanceRecord', back_populates='school_class',
                                         cascade="all, delete-orphan", lazy=True)

    @property
    def student_ids(self):
        return [s.id for s in self.students]

    def to_dict(self, include_students=False):
        data = {
            "id": self.id,
            "name": self.name,
            "teacher_id": self.teacher_id,
            "teacher": self.teacher.name if self.teacher else None,
            "subjects": list(self.subjects or []),
            "student_ids": self.student_ids,
        }
        if include_students:
            data["students"] = [s.to_dict() for s in self.students]
        return data
