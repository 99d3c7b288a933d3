# tests/test_goals_api.py
import sqlite3
from datetime import datetime, timezone
from unittest.mock import patch

from fintrack_api import db, goals
from tests.api_base import ApiTestCase

FIXED_NOW = datetime(2026, 12, 21, 12, 0, tzinfo=timezone.utc)


class TestGoalsApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth(self.verified_token())

    def create(self, **overrides):
        payload = {"title": "Emergency fund", "targetAmount": 5000, "targetDate": "2026-12-31",
                   "category": "Savings"}
        payload.update(overrides)
        return self.client.post("/api/goals", json=payload, headers=self.headers)

    def test_create_with_defaults(self):
        resp = self.create()
        self.assertEqual(resp.status_code, 201)
        goal = resp.get_json()["data"]["goal"]
        self.assertEqual(goal["currentAmount"], 0)
        self.assertEqual(goal["priority"], "medium")
        self.assertEqual(goal["status"], "active")
        self.assertEqual(goal["milestones"], [])

    def test_create_validation(self):
        resp = self.create(title="x" * 101, targetAmount=0, priority="urgent")
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.get_json()["errors"]}
        self.assertEqual(fields, {"title", "targetAmount", "priority"})

    def test_status_only_settable_on_update(self):
        goal_id = self.create(status="completed").get_json()["data"]["goal"]["id"]
        goals = self.client.get("/api/goals", headers=self.headers).get_json()["data"]["goals"]
        self.assertEqual(goals[0]["status"], "active")

        resp = self.client.put(f"/api/goals/{goal_id}", json={"status": "paused"}, headers=self.headers)
        self.assertEqual(resp.get_json()["data"]["goal"]["status"], "paused")
        bad = self.client.put(f"/api/goals/{goal_id}", json={"status": "done"}, headers=self.headers)
        self.assertEqual(bad.status_code, 400)

    def test_milestones_replaced_on_update(self):
        goal_id = self.create(milestones=[
            {"amount": 500, "date": "2025-06-01", "note": "first"},
        ]).get_json()["data"]["goal"]["id"]

        resp = self.client.put(f"/api/goals/{goal_id}", json={
            "currentAmount": 1500,
            "milestones": [{"amount": 1000, "date": "2025-08-01"}, {"amount": 1500, "date": "2025-07-01"}],
        }, headers=self.headers)
        goal = resp.get_json()["data"]["goal"]
        self.assertEqual(goal["currentAmount"], 1500)
        self.assertEqual([m["date"] for m in goal["milestones"]], ["2025-07-01", "2025-08-01"])

    def test_bad_milestone_rejected(self):
        resp = self.create(milestones=[{"amount": -5, "date": "soon"}])
        fields = {e["field"] for e in resp.get_json()["errors"]}
        self.assertEqual(fields, {"milestones[0].amount", "milestones[0].date"})

    def test_delete_is_hard(self):
        goal_id = self.create(milestones=[{"amount": 10, "date": "2025-06-01"}]).get_json()["data"]["goal"]["id"]
        self.assertEqual(self.client.delete(f"/api/goals/{goal_id}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.get("/api/goals", headers=self.headers).get_json()["data"]["goals"], [])
        self.assertEqual(self.client.delete(f"/api/goals/{goal_id}", headers=self.headers).status_code, 404)

    def test_other_user_gets_404(self):
        goal_id = self.create().get_json()["data"]["goal"]["id"]
        other = self.auth(self.verified_token(name="Ravi Kumar", email="ravi@example.com"))
        resp = self.client.put(f"/api/goals/{goal_id}", json={"currentAmount": 1}, headers=other)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.get("/api/goals", headers=other).get_json()["data"]["goals"], [])


class TestGoalProgressFields(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth(self.verified_token())
        patcher = patch("fintrack_api.goals._now", return_value=FIXED_NOW)
        patcher.start()
        self.addCleanup(patcher.stop)

    def create(self, **overrides):
        payload = {"title": "Laptop", "targetAmount": 5000, "currentAmount": 1000,
                   "targetDate": "2026-12-31", "category": "Tech"}
        payload.update(overrides)
        return self.client.post("/api/goals", json=payload, headers=self.headers).get_json()["data"]["goal"]

    def test_future_goal(self):
        goal = self.create()
        self.assertEqual(goal["remainingAmount"], 4000)
        self.assertAlmostEqual(goal["percentageComplete"], 20)
        # 9.5 days to midnight of the target date, rounded up
        self.assertEqual(goal["daysRemaining"], 10)
        self.assertEqual(goal["requiredDailySavings"], 400)
        self.assertTrue(goal["isOnTrack"])

    def test_past_goal_not_reached(self):
        goal = self.create(targetDate="2026-12-01")
        self.assertEqual(goal["daysRemaining"], 0)
        self.assertEqual(goal["requiredDailySavings"], 0)
        self.assertFalse(goal["isOnTrack"])

    def test_past_goal_reached(self):
        goal = self.create(targetDate="2026-12-01", currentAmount=5500)
        self.assertEqual(goal["remainingAmount"], -500)
        self.assertAlmostEqual(goal["percentageComplete"], 110)
        self.assertTrue(goal["isOnTrack"])

    def test_fields_follow_updates(self):
        goal = self.create()
        resp = self.client.put(f"/api/goals/{goal['id']}", json={"currentAmount": 3000}, headers=self.headers)
        updated = resp.get_json()["data"]["goal"]
        self.assertEqual(updated["remainingAmount"], 2000)
        self.assertEqual(updated["requiredDailySavings"], 200)


class TestGoalWritesAreAtomic(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth(self.verified_token())
        real = goals._replace_milestones

        def fail_after_first(conn, goal_id, milestones):
            real(conn, goal_id, milestones[:1])
            raise sqlite3.OperationalError("disk I/O error")

        self.fail_after_first = fail_after_first

    def count(self, table):
        with self.app.app_context():
            return db.query_db(f"SELECT COUNT(*) AS n FROM {table}", one=True)["n"]

    def test_failed_milestone_insert_rolls_back_new_goal(self):
        payload = {"title": "Trip", "targetAmount": 900, "targetDate": "2027-06-01", "category": "Travel",
                   "milestones": [{"amount": 300, "date": "2027-01-01"}, {"amount": 600, "date": "2027-03-01"}]}
        with patch("fintrack_api.goals._replace_milestones", side_effect=self.fail_after_first):
            resp = self.client.post("/api/goals", json=payload, headers=self.headers)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(self.count("goals"), 0)
        self.assertEqual(self.count("goal_milestones"), 0)

    def test_failed_milestone_replace_keeps_old_goal(self):
        resp = self.client.post("/api/goals", json={
            "title": "Trip", "targetAmount": 900, "currentAmount": 100, "targetDate": "2027-06-01",
            "category": "Travel", "milestones": [{"amount": 300, "date": "2027-01-01"}],
        }, headers=self.headers)
        goal_id = resp.get_json()["data"]["goal"]["id"]

        with patch("fintrack_api.goals._replace_milestones", side_effect=self.fail_after_first):
            resp = self.client.put(f"/api/goals/{goal_id}", json={
                "currentAmount": 500,
                "milestones": [{"amount": 450, "date": "2027-02-01"}, {"amount": 700, "date": "2027-04-01"}],
            }, headers=self.headers)
        self.assertEqual(resp.status_code, 500)

        goal = self.client.get("/api/goals", headers=self.headers).get_json()["data"]["goals"][0]
        self.assertEqual(goal["currentAmount"], 100)
        self.assertEqual([m["amount"] for m in goal["milestones"]], [300])
