from sqlalchemy.exc import IntegrityError
from rollcall.errors import ConflictError, NotFoundError, ValidationError
from rollcall.extensions import db
from rollcall.models import RoleEnum, SchoolClass, User
from utils.validation import parse_id


def _resolve_teacher(teacher_id):
    teacher = db.session.get(User, parse_id(teacher_id, "teacher_id", required=True))
    if not teacher or teacher.role is not RoleEnum.teacher:
        raise ValidationError("teacher_id must reference a teacher")
    return teacher


def _resolve_students(student_ids):
    ids = []
    for raw in student_ids or []:
        sid = parse_id(raw, "student_id", required=True)
        if sid not in ids:
            ids.append(sid)
    students = User.query.filter(User.id.in_(ids), User.role == RoleEnum.student).all() if ids else []
    if len(students) != len(ids):
        found = {s.id for s in students}
        raise ValidationError(f"Unknown students: {[i for i in ids if i not in found]}")
    return students


def _clean_subjects(subjects):
    if isinstance(subjects, str):
        subjects = subjects.split(",")
    return [s.strip() for s in (subjects or []) if s and s.strip()]


def get_class(class_id):
    school_class = db.session.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError("Class not found")
    return school_class


def create_class(data):
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError("Missing required name")
    if SchoolClass.query.filter_by(name=name).first():
        raise ConflictError(f"Class '{name}' already exists")

    school_class = SchoolClass(
        name=name,
        teacher=_resolve_teacher(data.get('teacher_id')),
        subjects=_clean_subjects(data.get('subjects')),
    )
    school_class.students = _resolve_students(data.get('student_ids'))
    db.session.add(school_class)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Class '{name}' already exists")
    return school_class


def update_class(school_class, data):
    if 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        existing = SchoolClass.query.filter_by(name=name).first()
        if existing and existing.id != school_class.id:
            raise ConflictError(f"Class '{name}' already exists")
        school_class.name = name
    if 'teacher_id' in data:
        school_class.teacher = _resolve_teacher(data.get('teacher_id'))
    if 'subjects' in data:
        school_class.subjects = _clean_subjects(data.get('subjects'))
    if 'student_ids' in data:
        school_class.students = _resolve_students(data.get('student_ids'))

    db.session.commit()
    return school_class


def delete_class(school_class):
    """Deleting a class also deletes its attendance records."""
    db.session.delete(school_class)
    db.session.commit()
