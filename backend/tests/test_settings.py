from unittest.mock import patch

from rollcall.extensions import db
from rollcall.models import Setting
from rollcall.settings import LOW_ATTENDANCE_THRESHOLD, SettingsCache, SettingsService


def test_cache_lifecycle():
    cache = SettingsCache()
    assert cache.get() is None

    cache.set({"a": "1"})
    values = cache.get()
    values["a"] = "changed"
    assert cache.get() == {"a": "1"}

    cache.invalidate()
    assert cache.get() is None


def test_threshold_defaults_to_75(app):
    service = SettingsService()
    assert service.low_attendance_threshold() == 75


def test_unparsable_threshold_falls_back(app):
    db.session.add(Setting(key=LOW_ATTENDANCE_THRESHOLD, value="lots"))
    db.session.commit()

    assert SettingsService().low_attendance_threshold() == 75


def test_values_are_cached_until_update(app):
    service = SettingsService()
    db.session.add(Setting(key=LOW_ATTENDANCE_THRESHOLD, value="60"))
    db.session.commit()
    assert service.low_attendance_threshold() == 60

    with patch.object(Setting, "query") as query:
        assert service.low_attendance_threshold() == 60
        query.all.assert_not_called()

    service.update(LOW_ATTENDANCE_THRESHOLD, 90)
    assert service.cache.get() is None
    assert service.low_attendance_threshold() == 90
    assert Setting.query.filter_by(key=LOW_ATTENDANCE_THRESHOLD).count() == 1


def test_stale_refill_does_not_survive_a_write(app):
    service = SettingsService()
    db.session.add(Setting(key=LOW_ATTENDANCE_THRESHOLD, value="60"))
    db.session.commit()

    # a reader loads the rows, then a writer commits before the reader stores them
    generation = service.cache.generation
    loaded = {s.key: s.value for s in Setting.query.all()}
    service.update(LOW_ATTENDANCE_THRESHOLD, 90)

    assert service.cache.set(loaded, generation) is False
    assert service.cache.get() is None
    assert service.low_attendance_threshold() == 90


def test_cache_set_with_current_generation():
    cache = SettingsCache()
    generation = cache.generation

    assert cache.set({"a": "1"}, generation) is True
    cache.invalidate()
    assert cache.generation == generation + 1
    assert cache.set({"a": "2"}, generation) is False
    assert cache.get() is None
