import random
import sys
import unittest
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from fastapi.testclient import TestClient

from infrastructure.persistence.postgres.watchlist_store import InMemoryWatchlistStore
from server.main import app
from watchpick import WeightedDrawer


class TestWatchlistApi(unittest.TestCase):
    def setUp(self) -> None:
        from server.api.rest import dependencies as deps

        self.store = InMemoryWatchlistStore()
        self.drawer = WeightedDrawer(rng=random.Random(0), on_unknown_priority=None)
        app.dependency_overrides[deps.get_watchlist_store] = lambda: self.store
        app.dependency_overrides[deps.get_drawer] = lambda: self.drawer
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides = {}

    def _add(self, title: str, **extra) -> dict:
        resp = self.client.post("/api/v1/watchlist", json={"profile_id": "p1", "title": title, **extra})
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

    def test_health(self) -> None:
        resp = self.client.get("/api/v1/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_add_list_toggle_delete_restore(self):
        body = self._add("Interstellar", priority="high", genres=["Sci-Fi"])
        self.assertEqual(body["title"], "Interstellar")
        self.assertEqual(body["priority"], "HIGH")
        self.assertEqual(body["media_type"], "MOVIE")
        self.assertFalse(body["watched"])
        self.assertEqual(body["source"], "manual")
        self.assertEqual(body["genres"], ["Sci-Fi"])
        item_id = body["id"]

        resp = self.client.get("/api/v1/watchlist", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual([i["id"] for i in resp.json()], [item_id])

        resp = self.client.get(f"/api/v1/watchlist/{item_id}", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["title"], "Interstellar")

        resp = self.client.post(f"/api/v1/watchlist/{item_id}/toggle_watched", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertTrue(resp.json()["watched"])

        resp = self.client.get("/api/v1/watchlist", params={"profile_id": "p1", "watched": "false"})
        self.assertEqual(resp.json(), [])

        resp = self.client.delete(f"/api/v1/watchlist/{item_id}", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 204, resp.text)

        resp = self.client.get("/api/v1/watchlist", params={"profile_id": "p1", "only_deleted": True})
        self.assertEqual([i["id"] for i in resp.json()], [item_id])

        resp = self.client.post(f"/api/v1/watchlist/{item_id}/restore", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertFalse(resp.json()["watched"])
        self.assertIsNone(resp.json()["deleted_at"])

    def test_patch_priority_and_validation(self):
        item_id = self._add("Arrival")["id"]

        resp = self.client.patch(f"/api/v1/watchlist/{item_id}", json={"profile_id": "p1", "priority": "urgent"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["priority"], "URGENT")

        resp = self.client.patch(f"/api/v1/watchlist/{item_id}", json={"profile_id": "p1", "priority": "someday"})
        self.assertEqual(resp.status_code, 400, resp.text)

        resp = self.client.post("/api/v1/watchlist", json={"profile_id": "p1", "title": "X", "media_type": "BOOK"})
        self.assertEqual(resp.status_code, 400, resp.text)

        resp = self.client.post("/api/v1/watchlist", json={"profile_id": "p1", "title": "   "})
        self.assertEqual(resp.status_code, 400, resp.text)

        resp = self.client.patch("/api/v1/watchlist/not-a-uuid", json={"profile_id": "p1", "watched": True})
        self.assertEqual(resp.status_code, 400, resp.text)

        resp = self.client.patch(f"/api/v1/watchlist/{item_id}", json={"profile_id": "p2", "watched": True})
        self.assertEqual(resp.status_code, 404, resp.text)

    def test_restore_conflict_and_deleted_paging(self):
        original = self._add("Dune")["id"]
        other = self._add("Sicario")["id"]
        self.client.delete(f"/api/v1/watchlist/{original}", params={"profile_id": "p1"})
        resp = self.client.patch(f"/api/v1/watchlist/{other}", json={"profile_id": "p1", "title": "Dune"})
        self.assertEqual(resp.status_code, 200, resp.text)

        resp = self.client.post(f"/api/v1/watchlist/{original}/restore", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 400, resp.text)
        self.assertIn("conflict", resp.json()["detail"])

        for idx in range(3):
            item_id = self._add(f"Gone {idx}")["id"]
            self.client.delete(f"/api/v1/watchlist/{item_id}", params={"profile_id": "p1"})
        resp = self.client.get(
            "/api/v1/watchlist", params={"profile_id": "p1", "only_deleted": True, "limit": 2, "offset": 2}
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(len(resp.json()), 2)
        self.assertTrue(all(i["deleted_at"] is not None for i in resp.json()))

    def test_draw_with_no_unwatched_items(self):
        resp = self.client.post("/api/v1/watchlist/draw", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 404, resp.text)
        self.assertEqual(resp.json()["detail"], "no unwatched items")

        item_id = self._add("Seen")["id"]
        self.client.patch(f"/api/v1/watchlist/{item_id}", json={"profile_id": "p1", "watched": True})
        resp = self.client.post("/api/v1/watchlist/draw", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 404, resp.text)

    def test_draw_returns_an_unwatched_item_with_odds(self):
        urgent = self._add("Urgent", priority="URGENT")
        low = self._add("Low", priority="LOW")
        watched = self._add("Done", priority="URGENT")
        self.client.post(f"/api/v1/watchlist/{watched['id']}/toggle_watched", params={"profile_id": "p1"})

        seen = set()
        for _ in range(30):
            resp = self.client.post("/api/v1/watchlist/draw", params={"profile_id": "p1"})
            self.assertEqual(resp.status_code, 200, resp.text)
            body = resp.json()
            self.assertIn(body["item"]["id"], {urgent["id"], low["id"]})
            self.assertEqual(body["total_weight"], 11)
            self.assertEqual(body["candidates"], 2)
            self.assertAlmostEqual(body["probability"], body["weight"] / 11)
            seen.add(body["item"]["id"])
        self.assertIn(urgent["id"], seen)

        resp = self.client.get("/api/v1/watchlist/odds", params={"profile_id": "p1"})
        self.assertEqual(resp.status_code, 200, resp.text)
        odds = resp.json()
        self.assertEqual([o["item"]["id"] for o in odds], [urgent["id"], low["id"]])
        self.assertAlmostEqual(odds[0]["probability"], 10 / 11)

    def test_draw_media_type_filter(self):
        self._add("Movie", priority="URGENT")
        anime = self._add("Anime", media_type="anime")
        resp = self.client.post("/api/v1/watchlist/draw", params={"profile_id": "p1", "media_type": "ANIME"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["item"]["id"], anime["id"])

        resp = self.client.post("/api/v1/watchlist/draw", params={"profile_id": "p1", "media_type": "SERIES"})
        self.assertEqual(resp.status_code, 404, resp.text)

        resp = self.client.post("/api/v1/watchlist/draw", params={"profile_id": "p1", "media_type": "VHS"})
        self.assertEqual(resp.status_code, 400, resp.text)


if __name__ == "__main__":
    unittest.main()
