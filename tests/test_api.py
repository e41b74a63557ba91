"""
Integration tests for the HabitLog API.

Every test runs against an empty in-memory database through FastAPI's
TestClient; the oracle dependency is overridden (none, or a fake one).
"""

import csv
import io
from datetime import timedelta

from classifier import fallback_classify
from clock import now_local, today_local
from models import Goal
from oracle import OracleError


def log_entry(client, text, days_ago=0, **overrides):
    """Parse free text, then save it the way the frontend does."""
    parsed = client.post("/habits/parse", json={"text": text}).json()
    parsed.update(overrides)
    if days_ago:
        parsed["date"] = (now_local() - timedelta(days=days_ago)).isoformat()
    response = client.post("/habits", json=parsed)
    assert response.status_code == 200
    return response.json()


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────


def test_health_check(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ─────────────────────────────────────────────────────────────────────────────
# Entries
# ─────────────────────────────────────────────────────────────────────────────


class TestParse:
    def test_parse_run(self, client):
        response = client.post("/habits/parse", json={"text": "ran 5km this morning, felt energized"})

        assert response.status_code == 200
        data = response.json()
        assert data["raw_text"] == "ran 5km this morning, felt energized"
        assert data["activity"] == "run"
        assert data["type"] == "positive habit"
        assert data["quantity"] == 5.0
        assert data["unit"] == "km"
        assert data["mood"] == "energized"

    def test_parse_does_not_store_anything(self, client):
        client.post("/habits/parse", json={"text": "ran 5km"})

        assert client.get("/habits").json()["total"] == 0

    def test_empty_text_rejected(self, client):
        assert client.post("/habits/parse", json={"text": ""}).status_code == 422
        assert client.post("/habits/parse", json={}).status_code == 422

    def test_oracle_failure_falls_back(self, client_with_oracle, fake_oracle):
        text = "procrastinated all day, feel like a failure"
        client = client_with_oracle(fake_oracle(OracleError("timeout")))

        data = client.post("/habits/parse", json={"text": text}).json()

        expected = fallback_classify(text)
        assert data["activity"] == expected["activity"] == "procrastinate"
        assert data["sentiment"] == "negative"

    def test_oracle_result_used(self, client_with_oracle, fake_oracle):
        client = client_with_oracle(fake_oracle('{"activity": "eat salad", "type": "positive habit", "category": "nutrition"}'))

        data = client.post("/habits/parse", json={"text": "had a salad for lunch"}).json()

        assert data["activity"] == "eat salad"
        assert data["category"] == "nutrition"

    def test_oracle_fields_with_wrong_types(self, client_with_oracle, fake_oracle):
        """Valid JSON with non-string fields must not fail the request."""
        client = client_with_oracle(fake_oracle(
            '{"activity": "run", "type": "positive habit", "category": 5, '
            '"trigger": {"who": "mom"}, "mood": ["happy"], "quantity": -5}'
        ))

        response = client.post("/habits/parse", json={"text": "ran 5km"})

        assert response.status_code == 200
        data = response.json()
        assert data["activity"] == "run"
        assert data["category"] == "exercise"
        assert data["trigger"] is None
        assert isinstance(data["mood"], str)
        assert data["quantity"] == 5.0

        saved = client.post("/habits", json=data)
        assert saved.status_code == 200


class TestEntries:
    def test_create_and_read_back(self, client):
        created = log_entry(client, "ran 5km this morning, felt energized")

        assert created["id"] > 0
        assert created["tags"] == ["morning"]

        page = client.get("/habits").json()
        assert page["total"] == 1
        assert page["has_more"] is False
        stored = page["items"][0]
        for field in ("raw_text", "activity", "type", "category", "quantity", "unit", "mood", "sentiment", "tags"):
            assert stored[field] == created[field]

    def test_minimal_entry_gets_current_date(self, client):
        response = client.post("/habits", json={"raw_text": "did something", "activity": "something"})

        assert response.status_code == 200
        assert response.json()["date"].startswith(today_local().isoformat())

    def test_invalid_entries_rejected(self, client):
        assert client.post("/habits", json={"raw_text": "x", "activity": ""}).status_code == 422
        assert client.post("/habits", json={"raw_text": "x", "activity": "x", "type": "great"}).status_code == 422
        assert client.post("/habits", json={"raw_text": "x", "activity": "x", "quantity": -1}).status_code == 422

    def test_newest_first_with_pagination(self, client):
        log_entry(client, "walked 2 miles", days_ago=2)
        log_entry(client, "read 20 pages", days_ago=1)
        log_entry(client, "ran 5km")

        page = client.get("/habits", params={"limit": 2}).json()

        assert [e["activity"] for e in page["items"]] == ["run", "read"]
        assert page["total"] == 3
        assert page["has_more"] is True

        rest = client.get("/habits", params={"limit": 2, "offset": 2}).json()
        assert [e["activity"] for e in rest["items"]] == ["walk"]
        assert rest["has_more"] is False

    def test_filters(self, client):
        log_entry(client, "walked 2 miles", days_ago=3)
        log_entry(client, "ran 5km, felt happy")
        log_entry(client, "read 20 pages")

        by_activity = client.get("/habits", params={"activity": "RU"}).json()
        assert [e["activity"] for e in by_activity["items"]] == ["run"]

        by_category = client.get("/habits", params={"category": "exercise"}).json()
        assert by_category["total"] == 2

        by_mood = client.get("/habits", params={"mood": "happy"}).json()
        assert by_mood["total"] == 1

        today = today_local().isoformat()
        by_date = client.get("/habits", params={"start_date": today, "end_date": today}).json()
        assert by_date["total"] == 2

    def test_activity_filter_wildcards_are_literal(self, client):
        client.post("/habits", json={"raw_text": "gave 100% effort", "activity": "100% effort"})
        client.post("/habits", json={"raw_text": "did 1000 pushups", "activity": "1000 pushups"})
        client.post("/habits", json={"raw_text": "ran", "activity": "run"})

        percent = client.get("/habits", params={"activity": "100%"}).json()
        underscore = client.get("/habits", params={"activity": "r_n"}).json()

        assert [e["activity"] for e in percent["items"]] == ["100% effort"]
        assert underscore["total"] == 0

    def test_offset_date_is_converted_to_local_time(self, client, monkeypatch):
        monkeypatch.setattr("clock.APP_TIMEZONE", "UTC")

        response = client.post("/habits", json={
            "raw_text": "ran 5km",
            "activity": "run",
            "date": "2026-10-15T08:00:00+02:00",
        })

        assert response.status_code == 200
        assert response.json()["date"].startswith("2026-10-15T06:00:00")


# ─────────────────────────────────────────────────────────────────────────────
# Goals
# ─────────────────────────────────────────────────────────────────────────────


class TestGoals:
    def create_goal(self, client, **fields):
        payload = {"title": "Run 30km this month", "activity": "run", "target_value": 30, "unit": "km", "period": "monthly"}
        payload.update(fields)
        response = client.post("/goals", json=payload)
        assert response.status_code == 200
        return response.json()

    def test_progress_follows_entries(self, client):
        goal = self.create_goal(client)
        assert goal["current_value"] == 0

        log_entry(client, "ran 5km")
        log_entry(client, "ran 7km")

        goals = client.get("/goals").json()
        assert goals[0]["id"] == goal["id"]
        assert goals[0]["current_value"] == 12

    def test_goal_update_failure_does_not_block_entry(self, client, db):
        db.add(Goal(title="Broken", activity="run", target_value=10, period="yearly"))
        db.commit()

        response = client.post("/habits", json={"raw_text": "ran 5km", "activity": "run", "quantity": 5, "unit": "km"})

        assert response.status_code == 200
        assert response.json()["quantity"] == 5
        listed = client.get("/habits").json()
        assert [e["activity"] for e in listed["items"]] == ["run"]

    def test_invalid_goal_rejected(self, client):
        payload = {"title": "x", "activity": "run", "target_value": 0, "period": "monthly"}
        assert client.post("/goals", json=payload).status_code == 422

        payload = {"title": "x", "activity": "run", "target_value": 5, "period": "yearly"}
        assert client.post("/goals", json=payload).status_code == 422

    def test_update_and_filter_active(self, client):
        goal = self.create_goal(client)
        self.create_goal(client, title="Read", activity="read", unit="pages")

        response = client.patch(f"/goals/{goal['id']}", json={"is_active": False, "target_value": 40})

        assert response.status_code == 200
        assert response.json()["target_value"] == 40
        active = client.get("/goals", params={"active_only": True}).json()
        assert [g["title"] for g in active] == ["Read"]

    def test_delete(self, client):
        goal = self.create_goal(client)

        assert client.delete(f"/goals/{goal['id']}").status_code == 200
        assert client.get("/goals").json() == []

    def test_missing_goal(self, client):
        assert client.patch("/goals/999", json={"title": "x"}).status_code == 404
        assert client.delete("/goals/999").status_code == 404


# ─────────────────────────────────────────────────────────────────────────────
# Stats, export and heatmap
# ─────────────────────────────────────────────────────────────────────────────


class TestStats:
    def test_stats_with_streaks(self, client):
        log_entry(client, "ran 5km", days_ago=1)
        log_entry(client, "ran 3km")

        data = client.get("/habits/stats").json()

        assert data["summary"]["total_entries"] == 2
        assert data["summary"]["total_distance"] == 8
        assert data["streaks"] == {"current": 2, "longest": 2, "total_days": 2}
        assert len(data["trends"]) == 2

    def test_invalid_group_by(self, client):
        assert client.get("/habits/stats", params={"group_by": "year"}).status_code == 422

    def test_export_csv(self, client):
        log_entry(client, "ran 5km, then stretched")

        response = client.get("/habits/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f'habits-{today_local().isoformat()}.csv' in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][:4] == ["ID", "Date", "Raw Text", "Activity"]
        assert rows[1][2] == "ran 5km, then stretched"
        assert rows[1][3] == "run"


class TestHeatmap:
    def test_default_is_mood(self, client):
        log_entry(client, "ran 5km, felt happy")

        data = client.get("/heatmap").json()

        assert data["type"] == "mood"
        assert data["daily"][0]["mood"] == "happy"

    def test_activity_range(self, client):
        log_entry(client, "ran 5km")

        data = client.get("/heatmap", params={"type": "activity", "range": 7}).json()

        assert data["activities"] == ["run"]
        assert len(data["heatmap"][0]["data"]) == 8

    def test_old_entries_outside_range(self, client):
        log_entry(client, "ran 5km", days_ago=20)

        data = client.get("/heatmap", params={"type": "sentiment", "range": 7}).json()

        assert data["daily"] == []

    def test_invalid_type(self, client):
        assert client.get("/heatmap", params={"type": "weather"}).status_code == 422


# ─────────────────────────────────────────────────────────────────────────────
# Habit stacks
# ─────────────────────────────────────────────────────────────────────────────


class TestHabitStacks:
    def test_suggestion_from_history(self, client):
        for days_ago in (2, 1):
            log_entry(client, "ran 5km", days_ago=days_ago)
            log_entry(client, "meditated 10 min", days_ago=days_ago)
        log_entry(client, "ran 3km")

        data = client.get("/habit-stacks").json()

        assert data["stacks"] == []
        assert data["suggestions"][0]["trigger_habit"] == "run"
        assert data["suggestions"][0]["linked_habit"] == "meditate"
        assert data["suggestions"][0]["strength"] == 100

    def test_accept_then_deactivate(self, client):
        log_entry(client, "ran 5km")
        log_entry(client, "meditated 10 min")

        stack = client.post("/habit-stacks", json={"trigger_habit": "run", "linked_habit": "meditate"}).json()
        assert stack["is_active"] is True

        active = client.get("/habit-stacks").json()["stacks"]
        assert active[0]["id"] == stack["id"]
        assert active[0]["success_rate"] == 100

        assert client.delete(f"/habit-stacks/{stack['id']}").status_code == 200
        assert client.get("/habit-stacks").json()["stacks"] == []

    def test_delete_unknown(self, client):
        assert client.delete("/habit-stacks/999").status_code == 404


# ─────────────────────────────────────────────────────────────────────────────
# Gamification and insights
# ─────────────────────────────────────────────────────────────────────────────


class TestGamification:
    def test_first_entry_awards_first_step(self, client):
        log_entry(client, "ran 5km this morning, felt energized")

        first = client.get("/gamification").json()
        second = client.get("/gamification").json()

        assert [b["name"] for b in first["new_badges"]] == ["First Step"]
        assert second["new_badges"] == []
        assert first["profile"]["total_points"] == 15
        assert first["level"] == {"level": 1, "title": "Beginner", "icon": "🌱", "min": 0}
        assert first["next_level"] == {"current": 15, "needed": 50, "progress": 30}

    def test_empty_history(self, client):
        data = client.get("/gamification").json()

        assert data["profile"]["total_points"] == 0
        assert data["badges"] == []

    def test_unknown_profile(self, client):
        assert client.get("/gamification", params={"profile_id": 999}).status_code == 404


class TestInsights:
    def test_onboarding_when_empty(self, client):
        data = client.get("/insights").json()

        assert [i["category"] for i in data] == ["onboarding", "goals"]

    def test_insights_from_history(self, client):
        log_entry(client, "ran 5km")

        data = client.get("/insights").json()

        assert any(i["title"] == "Keep the Momentum" for i in data)
        assert len(data) <= 10
