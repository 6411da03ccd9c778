from rollcall.extensions import db
from .base import TimestampMixin

class SessionSlot(db.Model, TimestampMixin):
    """A named teaching period ("Period 1", "09:00 - 10:00") offered when taking attendance."""
    __tablename__ = 'sessions'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
