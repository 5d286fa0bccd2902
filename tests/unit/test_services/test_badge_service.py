"""Tests for badge criteria evaluation."""

from datetime import date

import pytest

from konfi.core.exceptions import ValidationError
from konfi.models import Badge
from konfi.services.badge_service import _longest_week_streak, _max_in_window, badge_service


def entry(activity_id=1, name="Gottesdienst", points=1, type="gottesdienst", category=None, day=date(2026, 3, 1)):
    return {
        "activity_id": activity_id,
        "activity_name": name,
        "points": points,
        "type": type,
        "category": category,
        "day": day,
    }


def badge(criteria_type, value, extra=None):
    return Badge(name="B", icon="star", criteria_type=criteria_type, criteria_value=value, criteria_extra=extra)


class TestWindows:

    def test_max_in_window(self):
        days = [date(2026, 3, 1), date(2026, 3, 3), date(2026, 3, 8), date(2026, 3, 9)]
        assert _max_in_window(days, 3) == 2
        assert _max_in_window(days, 9) == 4
        assert _max_in_window([], 7) == 0

    def test_week_streak(self):
        # Mondays 2 and 9 March, then a gap before 23 March.
        days = [date(2026, 3, 2), date(2026, 3, 8), date(2026, 3, 10), date(2026, 3, 23)]
        assert _longest_week_streak(days) == 2
        assert _longest_week_streak([]) == 0


class TestCriteria:

    def test_points(self):
        entries = [entry(points=3), entry(points=2, type="gemeinde")]
        assert badge_service._is_met(badge("total_points", 5), entries)
        assert not badge_service._is_met(badge("gottesdienst_points", 4), entries)
        assert badge_service._is_met(badge("both_categories", 2), entries)
        assert not badge_service._is_met(badge("both_categories", 3), entries)

    def test_counts(self):
        entries = [entry(), entry(), entry(activity_id=2, name="Jugendabend")]
        assert badge_service._is_met(badge("activity_count", 3), entries)
        assert not badge_service._is_met(badge("unique_activities", 3), entries)
        assert badge_service._is_met(badge("specific_activity", 2, {"activity_id": 1}), entries)
        assert badge_service._is_met(badge("activity_combination", 2, {"activity_ids": [1, 2, 3]}), entries)

    def test_category(self):
        entries = [entry(category="sommer"), entry(category="sommer"), entry()]
        assert badge_service._is_met(badge("category_activities", 2, {"category": "sommer"}), entries)
        assert not badge_service._is_met(badge("category_activities", 3, {"category": "sommer"}), entries)

    def test_time_based(self):
        entries = [entry(day=date(2026, 3, 1)), entry(day=date(2026, 3, 20))]
        assert not badge_service._is_met(badge("time_based", 2, {"days": 7}), entries)
        assert badge_service._is_met(badge("time_based", 2, {"days": 30}), entries)
        assert not badge_service._is_met(badge("time_based", 1, {"days": 7}), [])

    def test_unknown_type_never_met(self):
        assert not badge_service._is_met(badge("bonus_points", 1), [entry()])


class TestValidation:

    def test_unknown_type(self):
        with pytest.raises(ValidationError, match="Unknown criteria type"):
            badge_service.validate_criteria("bonus_points", None)

    def test_extra_required(self):
        with pytest.raises(ValidationError, match="criteria_extra.activity_ids"):
            badge_service.validate_criteria("activity_combination", {"activity_ids": []})

    def test_extra_not_needed(self):
        badge_service.validate_criteria("streak", None)
