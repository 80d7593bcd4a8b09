"""
Tests for SettingsService validation and persistence.
"""
import pytest

from betterdoit.exceptions import ValidationError
from betterdoit.models import Frequency
from betterdoit.services.settings_service import SettingsService, normalize_phone_number

from conftest import run

USER = "user-1"


@pytest.fixture
def service(notification_repo):
    return SettingsService(notification_repo)


def test_defaults_for_new_user(service):
    setting = run(service.get(USER))
    assert setting.to_api() == {
        "phoneNumber": "",
        "frequency": "every-other-day",
        "time": "09:00",
        "dayOfWeek": "monday",
        "enabled": False,
    }


def test_save_normalizes_and_persists(service):
    saved = run(service.save(USER, phone_number="(555) 123-4567", frequency="weekly",
                             time="18:30", day_of_week="Friday", enabled=True))
    assert saved.phone_number == "5551234567"
    assert saved.frequency == Frequency.WEEKLY
    assert saved.day_of_week == "friday"
    assert saved.updated_at is not None
    assert run(service.get(USER)).time == "18:30"


def test_save_overwrites_whole_row(service):
    run(service.save(USER, phone_number="5551234567", frequency="weekly", time="08:00",
                     day_of_week="monday", enabled=True))
    run(service.save(USER, phone_number="", enabled=False))

    setting = run(service.get(USER))
    assert setting.enabled is False
    assert setting.phone_number == ""
    assert setting.frequency == Frequency.EVERY_OTHER_DAY
    assert setting.time == "09:00"


@pytest.mark.parametrize("kwargs,field", [
    ({"phone_number": "", "enabled": True}, "phoneNumber"),
    ({"phone_number": "555-1234", "enabled": True}, "phoneNumber"),
    ({"phone_number": "5551234567", "frequency": "hourly"}, "frequency"),
    ({"phone_number": "5551234567", "time": "9:00"}, "time"),
    ({"phone_number": "5551234567", "time": "24:00"}, "time"),
    ({"phone_number": "5551234567", "day_of_week": "someday"}, "dayOfWeek"),
    ({"phone_number": "5551234567", "frequency": "weekly", "day_of_week": None, "enabled": True}, "dayOfWeek"),
])
def test_invalid_settings_are_rejected_before_writing(service, kwargs, field):
    with pytest.raises(ValidationError) as exc_info:
        run(service.save(USER, **kwargs))
    assert exc_info.value.field == field
    assert run(service.repository.get(USER)) is None


def test_short_phone_is_allowed_while_disabled(service):
    saved = run(service.save(USER, phone_number="123", enabled=False))
    assert saved.phone_number == "123"


def test_normalize_phone_number():
    assert normalize_phone_number("+1 (555) 000-1111") == "15550001111"
    assert normalize_phone_number(None) == ""
