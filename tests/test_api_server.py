import json
import unittest
from unittest.mock import patch

from appshell.api_server import create_app
from appshell.storage import KeyValueStore

from support import FakeNetwork, make_launcher


class TestApiServer(unittest.TestCase):
    def setUp(self):
        self._print = patch("builtins.print")
        self._print.start()
        self.addCleanup(self._print.stop)
        self.network = FakeNetwork()
        self.store = KeyValueStore()
        self.launcher = make_launcher(self.network, self.store)
        self.addCleanup(self.launcher.shutdown)
        app = create_app(self.launcher)
        app.config["TESTING"] = True
        self.client = app.test_client()

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_options_preflight(self):
        self.assertEqual(self.client.open("/search", method="OPTIONS").status_code, 204)

    def test_search(self):
        data = self.client.get("/search?q=kanbn").get_json()
        self.assertEqual(data["query"], "kanbn")
        self.assertEqual([a["id"] for a in data["apps"]], ["kanban-board"])

    def test_apps_and_categories(self):
        apps = self.client.get("/apps?sort=alpha").get_json()["apps"]
        self.assertEqual([a["id"] for a in apps], ["kanban-board", "notes", "todo-list"])
        self.assertEqual(apps[1]["entryUrl"], "./apps/notes/index.html")
        self.assertEqual(apps[1]["iconUrl"], "./apps/notes/icon.svg")
        categories = self.client.get("/categories").get_json()["categories"]
        self.assertEqual(categories, ["planning", "productivity", "writing"])

    def test_open_app_and_recents(self):
        response = self.client.post("/apps/notes/open")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["entry"], "./apps/notes/index.html")

        recents = self.client.get("/recents?limit=3").get_json()["apps"]
        self.assertEqual([r["id"] for r in recents], ["notes"])
        self.assertIn("lastOpened", recents[0])

    def test_open_unknown_app_is_404(self):
        self.assertEqual(self.client.post("/apps/nope/open").status_code, 404)

    def test_bad_recents_limit(self):
        self.assertEqual(self.client.get("/recents?limit=many").status_code, 400)

    def test_theme(self):
        self.assertEqual(self.client.get("/theme").get_json()["theme"], "dark")
        data = self.client.post("/theme", json={"theme": "light"}).get_json()
        self.assertEqual(data, {"theme": "light", "color": "#e8e8ed"})
        self.assertEqual(self.client.post("/theme", json={}).status_code, 400)

    def test_update_check_and_status(self):
        self.network.add("./version.json", {"version": 2})
        result = self.client.post("/update/check").get_json()
        self.assertEqual(result["status"], "available")
        self.assertTrue(result["updateAvailable"])

        status = self.client.get("/update/status").get_json()
        self.assertEqual(status["phase"], "available")
        self.assertEqual(status["prompt"], {"remoteVersion": 2, "installedVersion": 1})

    def test_auto_check_preference(self):
        response = self.client.post("/update/auto-check", json={"enabled": False})
        self.assertEqual(response.get_json(), {"autoCheck": False})
        self.assertFalse(self.client.get("/update/status").get_json()["autoCheck"])

    def test_export_import_reset(self):
        self.store.set_item("todos", '["a"]')
        backup = self.client.get("/export").get_json()
        self.assertEqual(backup["appData"], {"todos": ["a"]})

        self.store.set_item("todos", "[]")
        declined = self.client.post("/import", json={"backup": backup, "confirm": False}).get_json()
        self.assertEqual(declined["status"], "cancelled")
        self.assertEqual(self.store.get_item("todos"), "[]")

        applied = self.client.post("/import", json={"backup": json.dumps(backup), "confirm": True}).get_json()
        self.assertEqual(applied["status"], "ok")
        self.assertEqual(self.store.get_item("todos"), '["a"]')

        self.assertEqual(self.client.post("/reset", json={"confirm": True}).get_json()["status"], "ok")
        self.assertIsNone(self.store.get_item("todos"))

    def test_invalid_import_is_400(self):
        self.assertEqual(self.client.post("/import", json={"backup": "{broken", "confirm": True}).status_code, 400)
        self.assertEqual(self.client.post("/import", json={}).status_code, 400)

    def test_notifications_are_drained(self):
        self.client.get("/export")
        first = self.client.get("/notifications").get_json()["notifications"]
        self.assertEqual([n["kind"] for n in first], ["success"])
        self.assertEqual(self.client.get("/notifications").get_json()["notifications"], [])


if __name__ == "__main__":
    unittest.main()
