"""
End-to-end tests for the HTTP API.
"""
import unittest
from unittest.mock import patch

from app.core.config import settings
from tests.base import ApiTestCase


PASSCODE = "letmein"


class QuizApiTestCase(ApiTestCase):
    """Logs in as organizer; tokens are sent as Bearer headers, cookies are cleared."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        patcher = patch.multiple(settings, ADMIN_PASSCODE=PASSCODE, ADMIN_PASSCODE_HASH=None)
        patcher.start()
        self.addCleanup(patcher.stop)

        resp = await self.client.post("/admin/login", json={"passcode": PASSCODE})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.admin = {"Authorization": f"Bearer {resp.json()['token']}"}
        self.client.cookies.clear()

    async def create_quiz(self, title="API Quiz"):
        resp = await self.client.post("/sessions", json={"title": title}, headers=self.admin)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    async def add_question(self, code, **overrides):
        body = {"question": "2+2?", "options": ["3", "4", "5"], "correct_index": 1, "points": 100}
        body.update(overrides)
        resp = await self.client.post(f"/sessions/{code}/questions", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    async def join(self, code, name="Player"):
        resp = await self.client.post("/participants/join", json={"code": code, "name": name})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.client.cookies.clear()
        data = resp.json()
        return data, {"Authorization": f"Bearer {data['token']}"}


class TestAdminAuth(QuizApiTestCase):
    """Test cases for the organizer login flow."""

    async def test_verify(self):
        """Test that verify accepts the admin token and rejects anonymous callers."""
        ok = await self.client.get("/admin/verify", headers=self.admin)
        anon = await self.client.get("/admin/verify")

        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json(), {"authenticated": True})
        self.assertEqual(anon.status_code, 401)

    async def test_wrong_passcode(self):
        """Test that a wrong passcode is 401."""
        resp = await self.client.post("/admin/login", json={"passcode": "nope"})
        self.assertEqual(resp.status_code, 401)

    async def test_login_sets_cookie(self):
        """Test that a successful login sets the admin cookie."""
        resp = await self.client.post("/admin/login", json={"passcode": PASSCODE})

        self.assertEqual(resp.status_code, 200)
        self.assertIn("admin_token", resp.cookies)

    async def test_login_rate_limited(self):
        """Test that repeated failed logins hit 429 with Retry-After."""
        rule = settings.RATE_LIMITS["login"]
        for _ in range(rule.max_attempts):
            resp = await self.client.post("/admin/login", json={"passcode": "wrong"})
            self.assertEqual(resp.status_code, 401)

        resp = await self.client.post("/admin/login", json={"passcode": PASSCODE})

        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.json()["code"], "RATE_LIMITED")
        self.assertGreater(int(resp.headers["Retry-After"]), 0)

    async def test_organizer_routes_require_login(self):
        """Test that organizer-only routes reject anonymous callers."""
        quiz = await self.create_quiz()

        for method, url in (
            ("post", "/sessions"),
            ("get", "/sessions"),
            ("post", f"/sessions/{quiz['code']}/end"),
            ("get", "/bank"),
        ):
            resp = await getattr(self.client, method)(url)
            self.assertEqual(resp.status_code, 401, url)


class TestQuizFlow(QuizApiTestCase):
    """Test cases for a full session from creation to leaderboard."""

    async def test_full_flow(self):
        """Test create, add questions, join, answer and read the leaderboard."""
        quiz = await self.create_quiz("Expo Friday")
        code = quiz["code"]
        q1 = await self.add_question(code)
        q2 = await self.add_question(code, question="Sky colour?", options=["blue", "red"], correct_index=0, points=50)
        self.assertEqual([q1["order_no"], q2["order_no"]], [1, 2])

        alice, alice_auth = await self.join(code.lower(), "Alice")
        bob, bob_auth = await self.join(code, "Bob")
        self.assertEqual(alice["session"]["code"], code)

        resp = await self.client.post("/answers", json={"question_id": q1["id"], "answer_index": 1}, headers=alice_auth)
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertTrue(resp.json()["is_correct"])
        self.assertEqual(resp.json()["points_earned"], 100)

        await self.client.post("/answers", json={"question_id": q2["id"], "answer_index": 0}, headers=alice_auth)
        await self.client.post("/answers", json={"question_id": q1["id"], "answer_index": 0}, headers=bob_auth)

        resp = await self.client.get(f"/sessions/{code}/leaderboard")
        self.assertEqual(resp.status_code, 200)
        board = resp.json()
        self.assertEqual([row["display_name"] for row in board], ["Alice", "Bob"])
        self.assertEqual([row["total_points"] for row in board], [150, 0])
        self.assertEqual(board[0]["correct_count"], 2)

        resp = await self.client.get("/participants/me/answers", headers=alice_auth)
        self.assertEqual(resp.json(), {"question_ids": sorted([q1["id"], q2["id"]])})

        resp = await self.client.get("/participants/me", headers=bob_auth)
        self.assertEqual(resp.json()["participant_id"], bob["participant"]["id"])
        self.assertEqual(resp.json()["session_code"], code)

        resp = await self.client.get("/sessions", headers=self.admin)
        self.assertEqual(resp.json()[0]["participant_count"], 2)

        resp = await self.client.post(f"/sessions/{code}/end", headers=self.admin)
        self.assertIsNotNone(resp.json()["ended_at"])

        resp = await self.client.post("/participants/join", json={"code": code, "name": "Late"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "SESSION_ENDED")

        resp = await self.client.get(f"/sessions/{code}/leaderboard")
        self.assertEqual(len(resp.json()), 2)

    async def test_public_questions_hide_answer(self):
        """Test that only organizers see correct_index."""
        quiz = await self.create_quiz()
        await self.add_question(quiz["code"])

        public = await self.client.get(f"/sessions/{quiz['code']}/questions")
        private = await self.client.get(f"/sessions/{quiz['code']}/questions", headers=self.admin)

        self.assertNotIn("correct_index", public.json()[0])
        self.assertEqual(public.json()[0]["question"], "2+2?")
        self.assertEqual(private.json()[0]["correct_index"], 1)

    async def test_duplicate_answer_is_conflict(self):
        """Test that a second answer to the same question is 409 DUPLICATE_ANSWER."""
        quiz = await self.create_quiz()
        q = await self.add_question(quiz["code"])
        _, auth = await self.join(quiz["code"])

        await self.client.post("/answers", json={"question_id": q["id"], "answer_index": 1}, headers=auth)
        resp = await self.client.post("/answers", json={"question_id": q["id"], "answer_index": 2}, headers=auth)

        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "DUPLICATE_ANSWER")

    async def test_cross_session_answer(self):
        """Test that answering another session's question is 400 INVALID_SESSION."""
        quiz_a = await self.create_quiz("A")
        quiz_b = await self.create_quiz("B")
        foreign = await self.add_question(quiz_b["code"])
        _, auth = await self.join(quiz_a["code"])

        resp = await self.client.post("/answers", json={"question_id": foreign["id"], "answer_index": 1}, headers=auth)

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "INVALID_SESSION")

    async def test_huge_answer_index(self):
        """Test that an out-of-options index is just wrong and an index beyond int32 is a 422."""
        quiz = await self.create_quiz()
        q = await self.add_question(quiz["code"])
        _, auth = await self.join(quiz["code"])

        huge = await self.client.post(
            "/answers", json={"question_id": q["id"], "answer_index": 2 ** 40}, headers=auth
        )
        huge_id = await self.client.post(
            "/answers", json={"question_id": 2 ** 40, "answer_index": 0}, headers=auth
        )
        wrong = await self.client.post(
            "/answers", json={"question_id": q["id"], "answer_index": 2 ** 31 - 1}, headers=auth
        )

        self.assertEqual(huge.status_code, 422)
        self.assertEqual(huge_id.status_code, 422)
        self.assertEqual(wrong.status_code, 201, wrong.text)
        self.assertFalse(wrong.json()["is_correct"])
        self.assertEqual(wrong.json()["points_earned"], 0)

    async def test_answer_requires_participant_token(self):
        """Test that /answers rejects callers without a participant token."""
        resp = await self.client.post("/answers", json={"question_id": 1, "answer_index": 0})
        self.assertEqual(resp.status_code, 401)

    async def test_unknown_session(self):
        """Test that an unknown code is 404 NOT_FOUND."""
        resp = await self.client.get("/sessions/ZZZZZ")

        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], "NOT_FOUND")

    async def test_invalid_question(self):
        """Test that invalid question content is 400 VALIDATION_ERROR."""
        quiz = await self.create_quiz()

        resp = await self.client.post(
            f"/sessions/{quiz['code']}/questions",
            json={"question": "Q?", "options": ["only"], "correct_index": 0},
            headers=self.admin,
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "VALIDATION_ERROR")

    async def test_short_name_rejected(self):
        """Test that joining with a one-character name is 400."""
        quiz = await self.create_quiz()

        resp = await self.client.post("/participants/join", json={"code": quiz["code"], "name": "A"})

        self.assertEqual(resp.status_code, 400)


class TestBankApi(QuizApiTestCase):
    """Test cases for the question bank endpoints."""

    async def test_bank_import(self):
        """Test adding to the bank and importing into a session."""
        quiz = await self.create_quiz()
        await self.add_question(quiz["code"])
        resp = await self.client.post(
            "/bank",
            json={"question": "Bank Q", "options": ["x", "y"], "correct_index": 1, "points": 10},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 201)
        bank_id = resp.json()["id"]

        resp = await self.client.post(
            f"/sessions/{quiz['code']}/questions/import", json={"bank_ids": [bank_id]}, headers=self.admin
        )
        self.assertEqual(resp.json(), {"count": 1})

        resp = await self.client.get(f"/sessions/{quiz['code']}/questions", headers=self.admin)
        self.assertEqual([q["order_no"] for q in resp.json()], [1, 2])
        self.assertEqual(resp.json()[1]["question"], "Bank Q")

        resp = await self.client.delete(f"/bank/{bank_id}", headers=self.admin)
        self.assertEqual(resp.json(), {"success": True})
        resp = await self.client.get("/bank", headers=self.admin)
        self.assertEqual(resp.json(), [])

    async def test_bank_ids_beyond_int32(self):
        """Test that bank ids outside the int4 range are rejected at the request edge."""
        quiz = await self.create_quiz()

        resp = await self.client.post(
            f"/sessions/{quiz['code']}/questions/import", json={"bank_ids": [2 ** 40]}, headers=self.admin
        )
        delete = await self.client.delete(f"/bank/{2 ** 40}", headers=self.admin)

        self.assertEqual(resp.status_code, 422)
        self.assertEqual(delete.status_code, 422)


class TestJoinRateLimit(ApiTestCase):
    """Test cases for the per-IP join limit."""

    async def test_join_limit(self):
        """Test that the eleventh join from one IP within a minute is 429."""
        quiz = await self.make_quiz()
        rule = settings.RATE_LIMITS["join"]

        for i in range(rule.max_attempts):
            resp = await self.client.post("/participants/join", json={"code": quiz.code, "name": f"P{i}"})
            self.assertEqual(resp.status_code, 200)

        resp = await self.client.post("/participants/join", json={"code": quiz.code, "name": "Extra"})
        other_ip = await self.client.post(
            "/participants/join", json={"code": quiz.code, "name": "Other"}, headers={"X-Forwarded-For": "10.0.0.9"}
        )

        self.assertEqual(resp.status_code, 429)
        self.assertIn("Retry-After", resp.headers)
        self.assertEqual(other_ip.status_code, 200)


if __name__ == "__main__":
    unittest.main()
