import os
import tempfile
import unittest
from io import BytesIO
from unittest.mock import patch

from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from db import database, models
from dependencies import get_catalogs, get_db, get_games
from main import app
from repository.catalog_repo import CatalogRegistry, build_catalog
from repository.game_repo import GameRegistry

DOCUMENT = {
    "makes": ["Ford", "Toyota", "Volkswagen"],
    "modelsByMake": {"Ford": ["Focus", "Mustang GT"], "Toyota": ["RAV4"], "Volkswagen": ["Golf", "Golf R"]},
    "vehicles": [
        {"filename": "ford_mustang_gt_2022.jpg", "make": "Ford", "model": "Mustang GT", "year": "2022"},
        {"filename": "toyota_rav4_2018.jpg", "make": "Toyota", "model": "RAV4", "year": "2018"},
        {"filename": "volkswagen_golfr_2019.jpg", "make": "Volkswagen", "model": "Golf R", "year": "2019"},
    ],
}

PLAYER = {"X-Anonymous-Id": "player-1"}


class FirstPickRng:
    def randrange(self, n):
        return 0

    def random(self):
        return 0.5


class GameApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        database.Base.metadata.create_all(bind=self.engine)
        TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        def override_get_db():
            db = TestingSession()
            try:
                yield db
            finally:
                db.close()

        self.catalogs = CatalogRegistry("unused.json")
        self.catalogs.set_catalog(build_catalog(DOCUMENT))
        self.games = GameRegistry(self.catalogs, clock=lambda: "2024-01-01", rng_factory=FirstPickRng)
        self.TestingSession = TestingSession

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_catalogs] = lambda: self.catalogs
        app.dependency_overrides[get_games] = lambda: self.games
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()

    def start(self, mode, headers=PLAYER):
        return self.client.post("/game/start", json={"mode": mode}, headers=headers)

    def guess(self, make, model, year="", headers=PLAYER):
        return self.client.post("/game/guess", json={"make": make, "model": model, "year": year}, headers=headers)


class TestPlayerHeader(GameApiTestCase):
    def test_missing_header(self):
        response = self.client.post("/game/start", json={"mode": "easy"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["path"], "/game/start")

    def test_invalid_header(self):
        response = self.start("easy", headers={"X-Anonymous-Id": "bad id!"})
        self.assertEqual(response.status_code, 400)

    def test_unknown_mode(self):
        self.assertEqual(self.start("expert").status_code, 422)


class TestCatalogGate(GameApiTestCase):
    def test_refuses_until_loaded(self):
        self.catalogs.catalog = None
        self.catalogs.error = "Could not read catalog catalog.json"
        response = self.start("daily")
        self.assertEqual(response.status_code, 503)
        self.assertIn("Could not load car catalog", response.json()["message"])
        self.assertEqual(self.client.get("/catalog/makes").status_code, 503)
        self.assertFalse(self.client.get("/catalog/status").json()["ready"])

    def test_guess_before_start(self):
        response = self.guess("Ford", "Focus")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.client.get("/game/state", headers=PLAYER).status_code, 409)


class TestDailyMode(GameApiTestCase):
    def test_start(self):
        body = self.start("daily").json()
        self.assertEqual(body["mode"], "daily")
        self.assertEqual(body["guesses_remaining"], 3)
        self.assertEqual(body["status"], "active")
        self.assertEqual(body["scoreboard"], [])
        self.assertIsNone(body["answer"])
        self.assertIsNone(body["prefilled_make"])
        self.assertEqual(body["clue"]["zoom_percent"], 333)
        self.assertEqual(body["clue"]["image_url"], "/game/image")

    def test_progress_survives_reload(self):
        self.start("daily")
        body = self.guess("Ford", "Focus").json()
        self.assertEqual(body["outcome"], "INCORRECT_CONTINUE")
        self.assertEqual(body["message"], "Incorrect! 2 guesses remaining.")

        with self.TestingSession() as db:
            row = db.query(models.DailyPuzzleState).one()
            self.assertEqual(row.storage_key, "dailyPuzzle-2024-01-01")
            self.assertEqual(row.owner_id, "player-1")

        # page reload: fresh in-memory controllers
        self.games.reset()
        body = self.start("daily").json()
        self.assertEqual(body["guesses_remaining"], 2)
        self.assertEqual(body["guesses"], [{"make": "Ford", "model": "Focus", "year": ""}])

    def test_win_reveals_and_blocks_replay(self):
        self.start("daily")
        body = self.guess("volkswagen", "golf r").json()
        self.assertEqual(body["outcome"], "WIN")
        game = body["game"]
        self.assertEqual(game["answer"], {"make": "Volkswagen", "model": "Golf R", "year": "2019"})
        self.assertEqual(game["clue"]["zoom_percent"], 100)
        self.assertFalse(game["can_advance"])

        self.assertEqual(self.guess("Ford", "Focus").json()["outcome"], "REJECTED")

        response = self.client.post("/game/advance", headers=PLAYER)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["message"], "Daily puzzle is once a day. Play another mode!")

        self.games.reset()
        body = self.start("daily").json()
        self.assertTrue(body["has_won"])
        self.assertEqual(body["status"], "won")

    def test_other_player_has_own_daily(self):
        self.start("daily")
        self.guess("Ford", "Focus")
        other = {"X-Anonymous-Id": "player-2"}
        self.assertEqual(self.start("daily", headers=other).json()["guesses_remaining"], 3)


class TestSessionModes(GameApiTestCase):
    def test_easy_prefills_make(self):
        body = self.start("easy").json()
        self.assertEqual(body["prefilled_make"], "Ford")
        self.assertEqual(body["max_guesses"], 5)
        self.assertEqual(body["scoreboard"], ["❓", "⬛", "⬛", "⬛", "⬛"])

    def test_blank_guess_rejected(self):
        self.start("easy")
        body = self.guess("Ford", "  ").json()
        self.assertEqual(body["outcome"], "REJECTED")
        self.assertEqual(body["game"]["guesses"], [])
        self.assertEqual(body["game"]["guesses_remaining"], 5)

    def test_advance_requires_finished_puzzle(self):
        self.start("easy")
        self.assertEqual(self.client.post("/game/advance", headers=PLAYER).status_code, 409)

    def test_hard_loss(self):
        self.start("hard")
        body = self.guess("Toyota", "RAV4").json()
        self.assertEqual(body["outcome"], "LOSS_OUT_OF_GUESSES")
        self.assertEqual(body["game"]["guesses_remaining"], 0)
        self.assertEqual(body["game"]["session_results"], [False])
        self.assertEqual(body["game"]["scoreboard"][0], "❌")
        self.assertTrue(body["game"]["can_advance"])

    def test_full_session_then_new_one(self):
        self.start("easy")
        for i in range(5):
            if i:
                body = self.client.post("/game/advance", headers=PLAYER).json()
                self.assertEqual(body["puzzle_number"], i + 1)
            if i == 2:
                for _ in range(5):
                    body = self.guess("Ford", "Focus").json()
            else:
                body = self.guess("Ford", "Mustang GT").json()

        game = body["game"]
        self.assertEqual(game["session_results"], [True, True, False, True, True])
        self.assertEqual(game["scoreboard"], ["✅", "✅", "❌", "✅", "✅"])
        self.assertTrue(game["next_starts_new_session"])

        body = self.client.post("/game/advance", headers=PLAYER).json()
        self.assertEqual(body["puzzle_number"], 1)
        self.assertEqual(body["session_results"], [])
        self.assertFalse(body["next_starts_new_session"])

    def test_switching_mode_replaces_session(self):
        self.start("easy")
        self.guess("Ford", "Mustang GT")
        body = self.start("hard").json()
        self.assertEqual(body["mode"], "hard")
        self.assertEqual(body["puzzle_number"], 1)
        self.assertEqual(body["session_results"], [])


class TestCatalogRoutes(GameApiTestCase):
    def test_makes_and_models(self):
        self.assertEqual(self.client.get("/catalog/makes").json(), ["Ford", "Toyota", "Volkswagen"])
        self.assertEqual(self.client.get("/catalog/models", params={"make": "Ford"}).json(), ["Focus", "Mustang GT"])
        self.assertEqual(len(self.client.get("/catalog/models").json()), 5)

    def test_suggestions(self):
        body = self.client.get("/catalog/suggestions", params={"field": "model", "q": "golf", "make": "Volkswagen"}).json()
        self.assertEqual(body["options"], ["Golf", "Golf R"])
        body = self.client.get("/catalog/suggestions", params={"q": "o"}).json()
        self.assertEqual(body["options"], ["Ford", "Toyota", "Volkswagen"])


class TestClueImage(GameApiTestCase):
    def test_active_view_hides_image_file(self):
        body = self.start("hard").json()
        self.assertEqual(body["clue"]["image_url"], "/game/image")
        self.assertNotIn("ford_mustang_gt_2022", str(body))
        self.assertEqual(self.client.get("/images/ford_mustang_gt_2022.jpg").status_code, 404)

    def test_image(self):
        self.start("hard")
        with tempfile.TemporaryDirectory() as tmp:
            img = Image.new("RGB", (80, 40), (10, 20, 30))
            img.save(os.path.join(tmp, "ford_mustang_gt_2022.jpg"), format="PNG")
            with patch.object(settings, "IMAGES_DIR", tmp):
                response = self.client.get("/game/image", headers=PLAYER)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "image/png")
        self.assertEqual(Image.open(BytesIO(response.content)).size, (80, 40))

    def test_missing_asset(self):
        self.start("hard")
        with tempfile.TemporaryDirectory() as tmp:
            with patch.object(settings, "IMAGES_DIR", tmp):
                self.assertEqual(self.client.get("/game/image", headers=PLAYER).status_code, 404)


class TestHealth(GameApiTestCase):
    def test_live(self):
        self.assertEqual(self.client.get("/health/live").json(), {"status": "ok"})

    def test_ready(self):
        self.assertEqual(self.client.get("/health/ready").status_code, 200)
        self.catalogs.catalog = None
        self.assertEqual(self.client.get("/health/ready").status_code, 503)


if __name__ == "__main__":
    unittest.main()
