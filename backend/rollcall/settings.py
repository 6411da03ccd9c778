"""
Runtime settings stored in the ``settings`` table, read through a process-wide
cache that is populated lazily and cleared on every write.
"""
import threading
from flask import current_app

LOW_ATTENDANCE_THRESHOLD = "lowAttendanceThreshold"
DEFAULT_THRESHOLD = 75


class SettingsCache:
    """
    Holds one snapshot of the settings table. Every invalidate() bumps the
    generation, and set() with a stale generation is ignored so a slow reader
    cannot put back values loaded before a write.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._values = None
        self._generation = 0

    @property
    def generation(self):
        with self._lock:
            return self._generation

    def get(self):
        with self._lock:
            return dict(self._values) if self._values is not None else None

    def set(self, values, generation=None):
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._values = dict(values)
            return True

    def invalidate(self):
        with self._lock:
            self._values = None
            self._generation += 1


class SettingsService:
    def __init__(self, cache=None):
        self.cache = cache or SettingsCache()

    def init_app(self, app):
        app.extensions["settings_service"] = self

    def all(self):
        generation = self.cache.generation
        values = self.cache.get()
        if values is None:
            from rollcall.models import Setting

            values = {s.key: s.value for s in Setting.query.all()}
            self.cache.set(values, generation)
        return values

    def get(self, key, default=None):
        return self.all().get(key, default)

    def low_attendance_threshold(self):
        default = current_app.config.get("DEFAULT_LOW_ATTENDANCE_THRESHOLD", DEFAULT_THRESHOLD)
        raw = self.get(LOW_ATTENDANCE_THRESHOLD)
        try:
            return int(raw)
        except (TypeError, ValueError):
            return default

    def update(self, key, value):
        from rollcall.extensions import db
        from rollcall.models import Setting

        setting = Setting.query.filter_by(key=key).first()
        if not setting:
            setting = Setting(key=key)
            db.session.add(setting)
        setting.value = str(value)
        db.session.commit()
        self.cache.invalidate()
        return setting
