import unittest
from unittest.mock import patch

from appshell.notifications import Notifier
from appshell.storage import AUTO_UPDATE_CHECK_KEY, KeyValueStore, ScopedStorage
from appshell.update_coordinator import CheckStatus, UpdateCoordinator, UpdatePhase
from appshell.worker import Request

from support import FAST_TIMEOUTS, FakeNetwork, make_host, publish_build


class UpdateCoordinatorTestCase(unittest.TestCase):
    def setUp(self):
        self.network = FakeNetwork()
        self.store = KeyValueStore()
        self.notifier = Notifier()
        self.host = make_host(self.network)
        self.addCleanup(self.host.stop)
        self._print = patch("builtins.print")
        self._print.start()
        self.addCleanup(self._print.stop)

    def start_host(self, build=3):
        """Install `build` and wait until it is active."""
        publish_build(self.network, build)
        self.host.register()
        self.assertTrue(self.host.flush(5))

    def make(self, session=None, **options):
        timeouts = dict(FAST_TIMEOUTS)
        timeouts.update(options)
        return UpdateCoordinator(
            self.host,
            session or self.host.create_session(),
            self.network,
            ScopedStorage(self.store, keys=(AUTO_UPDATE_CHECK_KEY,)),
            notifier=self.notifier,
            **timeouts,
        )


class TestCheckForUpdates(UpdateCoordinatorTestCase):
    def test_newer_remote_build_is_available(self):
        self.start_host(3)
        coordinator = self.make()
        self.network.add("./version.json", {"version": 5})

        result = coordinator.check_for_updates()
        self.assertIs(result.status, CheckStatus.AVAILABLE)
        self.assertEqual((result.remote_version, result.installed_version), (5, 3))
        self.assertIs(coordinator.phase, UpdatePhase.AVAILABLE)
        self.assertEqual(coordinator.prompt.remote_version, 5)

    def test_same_build_is_up_to_date(self):
        self.start_host(3)
        coordinator = self.make()
        result = coordinator.check_for_updates()
        self.assertIs(result.status, CheckStatus.UP_TO_DATE)
        self.assertFalse(result.update_available)
        self.assertIsNone(coordinator.prompt)
        self.assertEqual(coordinator.to_dict()["phase"], "up_to_date")

    def test_uncontrolled_session_reports_unknown(self):
        publish_build(self.network, 3)
        coordinator = self.make()
        result = coordinator.check_for_updates()
        self.assertIs(result.status, CheckStatus.UNKNOWN)
        self.assertEqual(result.remote_version, 3)
        self.assertFalse(result.update_available)

    def test_failed_fetch_leaves_prompt_alone(self):
        self.start_host(3)
        coordinator = self.make()
        self.network.add("./version.json", {"version": 4})
        coordinator.check_for_updates()
        self.assertIsNotNone(coordinator.prompt)

        self.network.fail("./version.json")
        result = coordinator.check_for_updates()
        self.assertIs(result.status, CheckStatus.FAILED)
        self.assertIs(coordinator.phase, UpdatePhase.CHECK_FAILED)
        self.assertEqual(coordinator.prompt.remote_version, 4)

    def test_malformed_version_document_fails_check(self):
        self.start_host(3)
        self.network.add("./version.json", {"buildDate": "2026-10-18"})
        self.assertIs(self.make().check_for_updates().status, CheckStatus.FAILED)

    def test_version_is_always_read_from_network(self):
        self.start_host(3)
        coordinator = self.make()
        self.network.calls.clear()
        coordinator.check_for_updates()
        coordinator.check_for_updates()
        self.assertEqual(len(self.network.calls_for("./version.json")), 2)

    def test_installed_version_comes_from_controller(self):
        self.start_host(3)
        self.assertEqual(self.make().get_installed_version(), 3)

    def test_unanswered_version_query_resolves_to_none(self):
        self.start_host(3)
        coordinator = self.make(version_query_timeout=0.2)
        # A stopped host never answers
        self.host.stop()
        self.assertIsNone(coordinator.get_installed_version())


class TestInstallUpdate(UpdateCoordinatorTestCase):
    def setUp(self):
        super().setUp()
        self.start_host(3)
        self.session = self.host.create_session()

    def test_cutover_reloads_once(self):
        coordinator = self.make(session=self.session)
        phases = []
        coordinator.add_phase_listener(phases.append)
        publish_build(self.network, 4)

        self.assertTrue(coordinator.install_update())
        self.assertEqual(self.session.reload_count, 1)
        self.assertEqual(self.session.controller.version, 4)
        self.assertEqual(self.host.cache_storage.keys(), ["appshell-v4"])
        self.assertEqual(phases, [
            UpdatePhase.INSTALLING,
            UpdatePhase.ACTIVATING,
            UpdatePhase.RELOADING,
            UpdatePhase.UNKNOWN,
        ])

    def test_timeout_wipes_caches_and_reloads(self):
        coordinator = self.make(session=self.session, update_found_timeout=0.2)

        # Nothing newer was published, so no new generation ever appears
        self.assertFalse(coordinator.install_update())
        self.assertEqual(self.host.cache_storage.keys(), [])
        self.assertEqual(self.session.reload_count, 1)
        self.assertEqual([n.kind for n in self.notifier.drain()], ["warning"])

    def test_offline_serving_returns_after_recovery(self):
        coordinator = self.make(session=self.session, update_found_timeout=0.2)
        self.assertFalse(coordinator.install_update())

        self.host.update()
        self.assertTrue(self.host.flush(5))
        self.assertEqual(self.host.cache_storage.keys(), ["appshell-v3"])

        self.network.offline = True
        self.assertEqual(self.session.fetch(Request("./app.js")).text(), "build 3: ./app.js")

    def test_online_fetch_after_recovery_caches_again(self):
        coordinator = self.make(session=self.session, update_found_timeout=0.2)
        self.assertFalse(coordinator.install_update())

        self.session.fetch(Request("./app.js"))
        self.network.offline = True
        self.assertEqual(self.session.fetch(Request("./app.js")).text(), "build 3: ./app.js")

    def test_failed_install_takes_recovery_path(self):
        coordinator = self.make(session=self.session)
        publish_build(self.network, 4, urls=("./", "./index.html", "./app.js", "./missing.js"))
        self.network.fail("./missing.js")

        self.assertFalse(coordinator.install_update())
        self.assertEqual(self.host.cache_storage.keys(), [])
        self.assertEqual(self.session.reload_count, 1)

    def test_reload_resets_phase_and_prompt(self):
        coordinator = self.make(session=self.session)
        self.network.add("./version.json", {"version": 9})
        coordinator.check_for_updates()

        self.session.reload()
        self.assertIs(coordinator.phase, UpdatePhase.UNKNOWN)
        self.assertIsNone(coordinator.prompt)


class TestAutoCheck(UpdateCoordinatorTestCase):
    def setUp(self):
        super().setUp()
        self.start_host(3)

    def test_enabled_by_default(self):
        self.assertTrue(self.make().auto_check_enabled())

    def test_disabled_preference_skips_check(self):
        coordinator = self.make()
        coordinator.set_auto_check(False)
        self.assertEqual(self.store.get_item(AUTO_UPDATE_CHECK_KEY), "false")
        self.network.calls.clear()

        self.assertIsNone(coordinator.run_auto_check())
        self.assertEqual(self.network.calls_for("./version.json"), [])

    def test_notifies_without_prompt(self):
        coordinator = self.make()
        self.network.add("./version.json", {"version": 6})

        result = coordinator.run_auto_check()
        self.assertTrue(result.update_available)
        self.assertIsNone(coordinator.prompt)
        toasts = self.notifier.drain()
        self.assertEqual(len(toasts), 1)
        self.assertIn("build 6", toasts[0].message)

    def test_scheduled_check_runs_in_background(self):
        coordinator = self.make()
        self.network.add("./version.json", {"version": 6})

        timer = coordinator.schedule_auto_check()
        timer.join(5)
        self.assertFalse(timer.is_alive())
        self.assertEqual(len(self.notifier.drain()), 1)

    def test_cancelled_check_does_not_run(self):
        coordinator = self.make(auto_check_delay=10.0)
        self.network.calls.clear()
        timer = coordinator.schedule_auto_check()
        coordinator.cancel_auto_check()
        timer.join(5)
        self.assertFalse(timer.is_alive())
        self.assertEqual(self.network.calls_for("./version.json"), [])


if __name__ == "__main__":
    unittest.main()
