from .base import TimestampMixin, RoleEnum, StatusEnum
from .User import User, TokenBlocklist
from .SchoolClass import SchoolClass, class_students
from .AttendanceRecord import AttendanceRecord, AttendanceEntry
from .Session import SessionSlot
from .Setting import Setting
from .AuditLog import AuditLog
