from rollcall.models import RoleEnum, SchoolClass

class RoleContext:
    """The caller of a report or submission: role plus user id."""

    def __init__(self, role, user_id):
        if not isinstance(role, RoleEnum):
            role = RoleEnum(role)
        self.role = role
        self.user_id = user_id

    @classmethod
    def for_user(cls, user):
        return cls(user.role, user.id)

    def __repr__(self):
        return f"<RoleContext {self.role.value}:{self.user_id}>"


class Scope:
    """
    What a role may see.
    - class_ids / student_ids of None mean unrestricted (admin).
    - An empty set means nothing is visible.
    """

    def __init__(self, class_ids=None, student_ids=None):
        self.class_ids = None if class_ids is None else set(class_ids)
        self.student_ids = None if student_ids is None else set(student_ids)

    def narrow_class(self, class_id=None):
        """
        Returns the class ids a query must be limited to, or None for no limit.
        An explicit class only narrows: outside the scope it yields an empty set.
        """
        if class_id is None:
            return None if self.class_ids is None else set(self.class_ids)
        if self.class_ids is None or class_id in self.class_ids:
            return {class_id}
        return set()

    def allows_class(self, class_id):
        return self.class_ids is None or class_id in self.class_ids


def resolve_scope(ctx):
    """
    Returns the Scope for a role context.
    - admin: everything.
    - teacher: the classes they teach and the students enrolled in them.
    - student: no classes, only their own entries.
    """
    if ctx.role is RoleEnum.admin:
        return Scope()

    if ctx.role is RoleEnum.teacher:
        classes = SchoolClass.query.filter_by(teacher_id=ctx.user_id).all()
        class_ids = [c.id for c in classes]
        student_ids = {sid for c in classes for sid in c.student_ids}
        return Scope(class_ids=class_ids, student_ids=student_ids)

    return Scope(class_ids=[], student_ids=[ctx.user_id])
