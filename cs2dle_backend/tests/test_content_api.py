from __future__ import annotations

import sqlite3
import tempfile
import unittest
import uuid
from pathlib import Path
from typing import Any, Dict
from unittest.mock import patch

from fastapi.testclient import TestClient

from cs2dle_backend.app.core.config import Settings
from cs2dle_backend.app.core.security import issue_jwt
from cs2dle_backend.app.main import create_app


class ContentApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.cfg = Settings(database_path=Path(self._td.name) / "cs2dle.sqlite3", jwt_secret="test-secret")
        self.app = create_app(self.cfg)
        self.client = TestClient(self.app)
        token = issue_jwt("admin-1", "ann@b.com", "Ann", self.cfg)
        self.headers = {"Authorization": f"Bearer {token}"}

    def tearDown(self) -> None:
        self.client.close()
        self._td.cleanup()


class TestWords(ContentApiTestCase):
    def add(self, word: str):
        return self.client.post("/cs2dle/games/words", json={"word": word}, headers=self.headers)

    def test_requires_session(self) -> None:
        self.assertEqual(self.client.get("/cs2dle/games/words").status_code, 401)
        self.assertEqual(self.client.post("/cs2dle/games/words", json={"word": "AWPER"}).status_code, 401)

    def test_add_normalizes_and_lists_sorted(self) -> None:
        resp = self.add("  smoke ")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["word"]["word"], "SMOKE")
        self.assertEqual(resp.json()["word"]["createdBy"], "ann@b.com")
        self.add("flash")

        words = self.client.get("/cs2dle/games/words", headers=self.headers).json()["words"]
        self.assertEqual([w["word"] for w in words], ["FLASH", "SMOKE"])

    def test_rejects_bad_words(self) -> None:
        for bad in ("knife1", "ak", "grenade"):
            resp = self.add(bad)
            self.assertEqual(resp.status_code, 400, bad)
            self.assertEqual(resp.json(), {"error": "Word must be exactly 5 letters"})
        self.assertEqual(self.client.post("/cs2dle/games/words", json={"word": 12345}, headers=self.headers).status_code, 400)

    def test_duplicate_conflicts(self) -> None:
        self.add("SMOKE")
        resp = self.add("smoke")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json(), {"error": "Word already exists"})

    def test_delete(self) -> None:
        word_id = self.add("SMOKE").json()["word"]["_id"]

        resp = self.client.delete(f"/cs2dle/games/words/{word_id}", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.delete(f"/cs2dle/games/words/{word_id}", headers=self.headers).status_code, 404)

    def test_delete_invalid_id(self) -> None:
        resp = self.client.delete("/cs2dle/games/words/not-an-id", headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_delete_word_used_by_active_answer_conflicts(self) -> None:
        word_id = self.add("SMOKE").json()["word"]["_id"]
        self.client.post(
            "/cs2dle/games/answers",
            json={"date": "2025-06-01", "status": "active", "answers": {"Wordle": {"word": "SMOKE"}}},
            headers=self.headers,
        )

        resp = self.client.delete(f"/cs2dle/games/words/{word_id}", headers=self.headers)
        self.assertEqual(resp.status_code, 409)

    def test_word_used_by_inactive_answer_can_be_deleted(self) -> None:
        word_id = self.add("SMOKE").json()["word"]["_id"]
        self.client.post(
            "/cs2dle/games/answers",
            json={"date": "2025-06-01", "status": "draft", "answers": {"Wordle": {"word": "SMOKE"}}},
            headers=self.headers,
        )
        resp = self.client.delete(f"/cs2dle/games/words/{word_id}", headers=self.headers)
        self.assertEqual(resp.status_code, 200)


class TestAnswers(ContentApiTestCase):
    def create(self, **doc: Any) -> Dict[str, Any]:
        resp = self.client.post("/cs2dle/games/answers", json=doc, headers=self.headers)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["answer"]

    def test_create_requires_valid_date(self) -> None:
        resp = self.client.post("/cs2dle/games/answers", json={"answers": {}}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"][0]["field"], "date")

        resp = self.client.post("/cs2dle/games/answers", json={"date": "tomorrow"}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_create_keeps_extra_fields_and_authorship(self) -> None:
        answer = self.create(date="2025-06-01", status="active", answers={"GuessSkin": {"skinId": "s1"}}, note="x")

        self.assertEqual(answer["note"], "x")
        self.assertEqual(answer["createdBy"], "ann@b.com")
        self.assertEqual(answer["lastModifiedBy"], "ann@b.com")
        uuid.UUID(answer["_id"])

    def test_list_newest_first_and_filter_by_game(self) -> None:
        self.create(date="2025-06-01", answers={"Wordle": {"word": "SMOKE"}, "GuessSkin": {"skinId": "s1"}})
        self.create(date="2025-06-02", answers={"GuessSkin": {"skinId": "s2"}})
        self.create(date="2025-06-03", answers={"Wordle": {"word": "FLASH"}})

        all_answers = self.client.get("/cs2dle/games/answers", headers=self.headers).json()["answers"]
        self.assertEqual([a["date"] for a in all_answers], ["2025-06-03", "2025-06-02", "2025-06-01"])

        wordle = self.client.get("/cs2dle/games/answers", params={"gameType": "Wordle"}, headers=self.headers).json()
        self.assertEqual([a["date"] for a in wordle["answers"]], ["2025-06-03", "2025-06-01"])
        self.assertEqual(list(wordle["answers"][1]["answers"]), ["Wordle"])

    def test_get_update_delete(self) -> None:
        answer_id = self.create(date="2025-06-01", status="draft")["_id"]

        resp = self.client.get(f"/cs2dle/games/answers/{answer_id}", headers=self.headers)
        self.assertEqual(resp.json()["answer"]["status"], "draft")

        resp = self.client.put(f"/cs2dle/games/answers/{answer_id}", json={"status": "active"}, headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["answer"]["status"], "active")
        self.assertEqual(resp.json()["answer"]["date"], "2025-06-01")

        resp = self.client.delete(f"/cs2dle/games/answers/{answer_id}", headers=self.headers)
        self.assertEqual(resp.json(), {"message": "Answer deleted successfully"})
        self.assertEqual(self.client.get(f"/cs2dle/games/answers/{answer_id}", headers=self.headers).status_code, 404)

    def test_update_to_taken_date_is_rejected(self) -> None:
        self.create(date="2025-06-01")
        other = self.create(date="2025-06-02")["_id"]

        resp = self.client.put(f"/cs2dle/games/answers/{other}", json={"date": "2025-06-01"}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "An answer already exists for this date"})

    def test_update_rejects_null_date(self) -> None:
        self.create(date="2025-06-02")
        answer_id = self.create(date="2025-06-01")["_id"]

        resp = self.client.put(f"/cs2dle/games/answers/{answer_id}", json={"date": None}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"][0]["field"], "date")

        stored = self.client.get(f"/cs2dle/games/answers/{answer_id}", headers=self.headers).json()["answer"]
        self.assertEqual(stored["date"], "2025-06-01")
        listed = self.client.get("/cs2dle/games/answers", headers=self.headers).json()["answers"]
        self.assertEqual([a["date"] for a in listed], ["2025-06-02", "2025-06-01"])

    def test_listing_limit_applies_after_game_filter(self) -> None:
        store = self.app.state.content_store
        self.create(date="2025-06-01", answers={"Wordle": {"word": "SMOKE"}})
        self.create(date="2025-06-02", answers={"GuessSkin": {"skinId": "s1"}})
        self.create(date="2025-06-03", answers={"Wordle": {"word": "FLASH"}})
        self.create(date="2025-06-04", answers={"GuessSkin": {"skinId": "s2"}})

        dates = [r.document()["date"] for r in store.list_answers("Wordle", limit=1)]
        self.assertEqual(dates, ["2025-06-03"])
        self.assertEqual(len(store.list_answers(limit=3)), 3)
        self.assertEqual(store.list_answers("Trivia"), [])

    def test_update_missing(self) -> None:
        resp = self.client.put(f"/cs2dle/games/answers/{uuid.uuid4()}", json={"status": "x"}, headers=self.headers)
        self.assertEqual(resp.status_code, 404)


PRECASE = {
    "name": "AK-47 | Redline",
    "image": "https://example.com/ak.png",
    "weapon": {"name": "AK-47"},
    "category": {"name": "Rifles"},
    "pattern": {"name": "Redline"},
    "rarity": {"name": "Classified"},
    "probability": 2.5,
}


class TestPrecases(ContentApiTestCase):
    def create(self) -> Dict[str, Any]:
        resp = self.client.post("/cs2dle/rewards/daily-case/create", json=PRECASE, headers=self.headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()["precase"]

    def test_all_is_404_when_empty(self) -> None:
        resp = self.client.get("/cs2dle/rewards/daily-case/all", headers=self.headers)
        self.assertEqual(resp.status_code, 404)

    def test_create_fills_defaults(self) -> None:
        precase = self.create()

        self.assertEqual(precase["status"], "active")
        self.assertEqual(precase["rarity"]["color"], "#b0c3d9")
        self.assertTrue(precase["weapon"]["id"].startswith("weapon_"))
        self.assertTrue(precase["skinId"].startswith("skin_"))
        self.assertTrue(precase["isManual"])
        self.assertEqual(precase["createdBy"], "ann@b.com")

        listing = self.client.get("/cs2dle/rewards/daily-case/all", headers=self.headers).json()
        self.assertEqual([p["_id"] for p in listing["preCase"]], [precase["_id"]])

    def test_create_missing_fields(self) -> None:
        resp = self.client.post("/cs2dle/rewards/daily-case/create", json={"name": "x"}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.json()["error"]}
        self.assertTrue({"image", "weapon", "category", "pattern", "rarity"} <= fields)

    def test_edit_with_put_and_patch(self) -> None:
        precase_id = self.create()["_id"]

        resp = self.client.put(
            "/cs2dle/rewards/daily-case/edit", json={"_id": precase_id, "price": 12.5}, headers=self.headers
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["precase"]["price"], 12.5)
        self.assertEqual(resp.json()["precase"]["probability"], 2.5)

        resp = self.client.patch(
            "/cs2dle/rewards/daily-case/edit", json={"_id": precase_id, "name": "Renamed"}, headers=self.headers
        )
        self.assertEqual(resp.json()["precase"]["name"], "Renamed")

    def test_edit_unknown_and_malformed_ids(self) -> None:
        resp = self.client.put("/cs2dle/rewards/daily-case/edit", json={"_id": str(uuid.uuid4())}, headers=self.headers)
        self.assertEqual(resp.status_code, 404)
        resp = self.client.put("/cs2dle/rewards/daily-case/edit", json={"_id": "nope"}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_toggle_status(self) -> None:
        precase_id = self.create()["_id"]

        resp = self.client.post(
            "/cs2dle/rewards/daily-case/toggle-status", json={"_id": precase_id, "status": "active"}, headers=self.headers
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Precase is already active", "currentStatus": "active"})

        resp = self.client.patch(
            "/cs2dle/rewards/daily-case/toggle-status",
            json={"_id": precase_id, "status": "inactive"},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["precase"]["status"], "inactive")
        self.assertEqual(resp.json()["message"], "Precase status updated to inactive")

    def test_toggle_rejects_unknown_status(self) -> None:
        precase_id = self.create()["_id"]
        resp = self.client.post(
            "/cs2dle/rewards/daily-case/toggle-status", json={"_id": precase_id, "status": "paused"}, headers=self.headers
        )
        self.assertEqual(resp.status_code, 400)


class TestServerErrors(ContentApiTestCase):
    def test_database_failure_is_503(self) -> None:
        with patch.object(self.app.state.content_store, "list_words", side_effect=sqlite3.OperationalError("locked")):
            resp = self.client.get("/cs2dle/games/words", headers=self.headers)
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json(), {"error": "Database unavailable"})

    def test_unexpected_failure_is_500(self) -> None:
        client = TestClient(self.app, raise_server_exceptions=False)
        with patch.object(self.app.state.content_store, "list_words", side_effect=KeyError("boom")):
            resp = client.get("/cs2dle/games/words", headers=self.headers)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Internal server error"})

    def test_healthz(self) -> None:
        self.assertEqual(self.client.get("/healthz").json(), {"ok": True})


if __name__ == "__main__":
    unittest.main()
