"""Tests for data models."""

import pytest

from adhanbell.db.models import PRAYER_ORDER, NotificationPreferences, PrayerName


def test_prayer_name_parse():
    """Test case-insensitive lookup."""
    assert PrayerName.parse("zohor") is PrayerName.ZOHOR
    assert PrayerName.parse(" ISYAK ") is PrayerName.ISYAK
    assert PrayerName.parse(PrayerName.ASAR) is PrayerName.ASAR

    with pytest.raises(ValueError):
        PrayerName.parse("Dhuha")


def test_prayer_order_is_chronological():
    """Test canonical order."""
    assert [p.value for p in PRAYER_ORDER] == [
        "Subuh",
        "Syuruk",
        "Zohor",
        "Asar",
        "Maghrib",
        "Isyak",
    ]


def test_preferences_mute_all():
    """Test the boolean form of muting."""
    prefs = NotificationPreferences.create(muted=True)

    assert prefs.all_muted
    assert all(prefs.is_muted(p) for p in PRAYER_ORDER)
    assert not NotificationPreferences.create(muted=False).muted


def test_preferences_equality_ignores_mute_order():
    """Test that equality is by value, not by how muting was expressed."""
    first = NotificationPreferences.create(muted=["Asar", "Zohor"], reminder_lead_minutes=10)
    second = NotificationPreferences.create(muted=["zohor", "asar"], reminder_lead_minutes=10)

    assert first == second
    assert first != NotificationPreferences.create(muted=["Asar"], reminder_lead_minutes=10)


def test_preferences_with_toggled():
    """Test toggling a prayer on and off."""
    prefs = NotificationPreferences()
    muted = prefs.with_toggled(PrayerName.MAGHRIB)

    assert muted.is_muted(PrayerName.MAGHRIB)
    assert muted.muted_names() == ["Maghrib"]
    assert muted.with_toggled(PrayerName.MAGHRIB) == prefs


def test_preferences_reject_negative_lead():
    """Test lead time validation."""
    with pytest.raises(ValueError):
        NotificationPreferences(reminder_lead_minutes=-5)
