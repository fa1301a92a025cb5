import json
import unittest
from unittest.mock import MagicMock, patch

from appshell.storage import RECENTS_KEY, KeyValueStore

from support import FakeClock, FakeNetwork, make_launcher


class TestLauncher(unittest.TestCase):
    def setUp(self):
        self._print = patch("builtins.print")
        self._print.start()
        self.addCleanup(self._print.stop)
        self.network = FakeNetwork()
        self.store = KeyValueStore()
        self.launcher = make_launcher(self.network, self.store)
        self.addCleanup(self.launcher.shutdown)

    def test_boot_loads_apps_and_theme(self):
        apps = self.launcher.list_apps(sort="alpha")
        self.assertEqual([a.id for a in apps], ["kanban-board", "notes", "todo-list"])
        self.assertEqual(self.launcher.theme.get_theme(), "dark")
        self.assertIs(self.launcher.session.controller, self.launcher.host.active)

    def test_search(self):
        self.assertEqual(self.launcher.search("todo")[0].id, "todo-list")
        self.assertEqual([a.id for a in self.launcher.search("kanbn")], ["kanban-board"])
        self.assertEqual([a.id for a in self.launcher.search("")], ["todo-list", "notes", "kanban-board"])

    def test_open_app_records_recent(self):
        self.launcher.recents.clock = FakeClock()
        self.assertEqual(self.launcher.open_app("notes"), "./apps/notes/index.html")
        self.assertEqual(self.launcher.open_app("todo-list"), "./apps/todo-list/index.html")

        self.assertEqual([r.app.id for r in self.launcher.recent_apps()], ["todo-list", "notes"])
        self.assertIn("notes", self.store.get_item(RECENTS_KEY))
        self.assertEqual([a.id for a in self.launcher.list_apps()][:2], ["todo-list", "notes"])

    def test_open_unknown_app(self):
        self.assertIsNone(self.launcher.open_app("does-not-exist"))
        self.assertEqual(len(self.launcher.recents), 0)

    def test_opened_app_follows_theme_until_closed(self):
        context = MagicMock()
        self.launcher.open_app("notes", context=context)
        self.launcher.theme.apply("light")
        self.launcher.close_app(context)
        self.launcher.theme.apply("amalfi")
        self.assertEqual([c[0][0]["theme"] for c in context.call_args_list], ["dark", "light"])

    def test_category_filter(self):
        self.assertEqual([a.id for a in self.launcher.list_apps("planning")], ["kanban-board"])

    def test_known_storage_keys(self):
        keys = self.launcher.known_storage_keys()
        self.assertEqual(keys[:3], ["todos", "appshell-notes", "kanbanBoard"])
        self.assertIn("appshell-theme", keys)
        self.assertIn("appshell-recents", keys)

    def test_export_then_import_restores_and_reloads(self):
        self.store.set_item("todos", '[{"text": "milk"}]')
        self.launcher.open_app("notes")
        exported = self.launcher.export()

        self.store.set_item("todos", "[]")
        self.launcher.theme.apply("light")
        self.assertTrue(self.launcher.import_backup(json.dumps(exported), lambda message: True))

        self.assertEqual(json.loads(self.store.get_item("todos")), [{"text": "milk"}])
        self.assertEqual(self.launcher.theme.get_theme(), "dark")
        self.assertEqual(self.launcher.session.reload_count, 1)

    def test_reset_clears_data_and_reloads(self):
        self.store.set_item("todos", "[]")
        self.launcher.open_app("notes")

        self.assertTrue(self.launcher.reset(lambda message: True))
        self.assertIsNone(self.store.get_item("todos"))
        self.assertIsNone(self.store.get_item(RECENTS_KEY))
        self.assertEqual(self.launcher.session.reload_count, 1)
        # The reload re-applies the default theme
        self.assertEqual(self.launcher.theme.get_theme(), "dark")

    def test_apps_load_from_cache_when_offline(self):
        self.network.offline = True
        self.assertEqual(len(self.launcher.load_apps()), 3)


if __name__ == "__main__":
    unittest.main()
