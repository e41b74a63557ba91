"""
Tests for goals.py and the period windows in clock.py.
"""

import logging
from datetime import date, datetime, timezone

import pytest

from clock import period_window, week_start, sunday_index, to_naive_local
from goals import goal_matches, update_goal_progress
from models import Goal

NOW = datetime(2026, 10, 17, 12, 0)  # Saturday noon


def add_goal(db, **fields):
    defaults = {"title": "Run 30km", "activity": "run", "target_value": 30, "unit": "km", "period": "monthly"}
    defaults.update(fields)
    goal = Goal(**defaults)
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


class TestPeriodWindow:
    def test_daily(self):
        start, end = period_window("daily", NOW)
        assert start == datetime(2026, 10, 17)
        assert end.date() == date(2026, 10, 17)
        assert end.hour == 23

    def test_weekly_starts_sunday_midnight(self):
        start, end = period_window("weekly", NOW)
        assert start == datetime(2026, 10, 11)
        assert end.date() == date(2026, 10, 17)

    def test_monthly(self):
        start, end = period_window("monthly", NOW)
        assert start == datetime(2026, 10, 1)
        assert end.date() == date(2026, 10, 31)

    def test_december_rolls_over(self):
        _, end = period_window("monthly", datetime(2026, 12, 5))
        assert end.date() == date(2026, 12, 31)

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            period_window("yearly", NOW)

    def test_week_helpers(self):
        assert week_start(date(2026, 10, 11)) == date(2026, 10, 11)
        assert week_start(date(2026, 10, 14)) == date(2026, 10, 11)
        assert sunday_index(date(2026, 10, 11)) == 0
        assert sunday_index(date(2026, 10, 17)) == 6


class TestGoalMatching:
    def test_case_insensitive_substring(self):
        goal = Goal(activity="Run")
        assert goal_matches(goal, "morning run")
        assert goal_matches(goal, "RUN")
        assert not goal_matches(goal, "walk")
        assert not goal_matches(goal, "")


class TestUpdateGoalProgress:
    def test_monthly_sum_of_matching_entries(self, db, entry_in_db):
        goal = add_goal(db)
        entry_in_db(activity="run", quantity=5, date=datetime(2026, 10, 3, 8))
        entry_in_db(activity="Morning Run", quantity=7, date=datetime(2026, 10, 15, 8))
        entry_in_db(activity="run", quantity=100, date=datetime(2026, 9, 30, 8))
        entry_in_db(activity="walk", quantity=3, date=datetime(2026, 10, 15, 9))

        updated = update_goal_progress(db, "run", now=NOW)

        db.refresh(goal)
        assert [g.id for g in updated] == [goal.id]
        assert goal.current_value == 12

    def test_recomputed_not_accumulated(self, db, entry_in_db):
        goal = add_goal(db)
        entry_in_db(activity="run", quantity=5, date=datetime(2026, 10, 3, 8))

        update_goal_progress(db, "run", now=NOW)
        update_goal_progress(db, "run", now=NOW)

        db.refresh(goal)
        assert goal.current_value == 5

    def test_weekly_window_from_sunday(self, db, entry_in_db):
        goal = add_goal(db, period="weekly", target_value=10)
        entry_in_db(activity="run", quantity=2, date=datetime(2026, 10, 10, 23))
        entry_in_db(activity="run", quantity=3, date=datetime(2026, 10, 11, 0, 30))
        entry_in_db(activity="run", quantity=4, date=datetime(2026, 10, 17, 7))

        update_goal_progress(db, "run", now=NOW)

        db.refresh(goal)
        assert goal.current_value == 7

    def test_daily_window(self, db, entry_in_db):
        goal = add_goal(db, period="daily", target_value=5)
        entry_in_db(activity="run", quantity=2, date=datetime(2026, 10, 16, 20))
        entry_in_db(activity="run", quantity=3, date=datetime(2026, 10, 17, 6))

        update_goal_progress(db, "run", now=NOW)

        db.refresh(goal)
        assert goal.current_value == 3

    def test_unrelated_and_inactive_goals_untouched(self, db, entry_in_db):
        reading = add_goal(db, title="Read", activity="read", unit="pages")
        paused = add_goal(db, title="Paused run", is_active=False)
        entry_in_db(activity="run", quantity=5, date=datetime(2026, 10, 3, 8))

        updated = update_goal_progress(db, "run", now=NOW)

        db.refresh(reading)
        db.refresh(paused)
        assert updated == []
        assert reading.current_value == 0
        assert paused.current_value == 0

    def test_like_wildcards_are_literal(self, db, entry_in_db):
        goal = add_goal(db, activity="100%")
        entry_in_db(activity="100% effort", quantity=1, date=datetime(2026, 10, 3, 8))
        entry_in_db(activity="1000 pushups", quantity=50, date=datetime(2026, 10, 3, 9))

        update_goal_progress(db, "100% effort", now=NOW)

        db.refresh(goal)
        assert goal.current_value == 1

    def test_failure_is_logged_and_swallowed(self, db, entry_in_db, caplog):
        add_goal(db, period="yearly")
        entry = entry_in_db(activity="run", quantity=5, date=datetime(2026, 10, 3, 8))

        with caplog.at_level(logging.ERROR, logger="habitlog.goals"):
            updated = update_goal_progress(db, "run", now=NOW)

        assert updated == []
        assert "Periodo desconocido" in caplog.text
        db.refresh(entry)
        assert entry.quantity == 5


class TestNaiveLocal:
    def test_aware_value_converted_to_app_timezone(self, monkeypatch):
        monkeypatch.setattr("clock.APP_TIMEZONE", "Europe/Madrid")

        value = datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)

        assert to_naive_local(value) == datetime(2026, 7, 1, 14, 0)

    def test_naive_value_kept(self):
        assert to_naive_local(NOW) == NOW
