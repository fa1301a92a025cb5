import os
import unittest
from unittest.mock import patch

from appshell.config import Config

CONFIG_VARIABLES = (
    "APPSHELL_ORIGIN",
    "APPSHELL_SEARCH_THRESHOLD",
    "APPSHELL_RECENTS_LIMIT",
    "APPSHELL_VERSION_QUERY_TIMEOUT",
    "APPSHELL_UPDATE_FOUND_TIMEOUT",
    "APPSHELL_AUTO_CHECK_DELAY",
    "APPSHELL_DEFAULT_THEME",
)


def clean_environ(**overrides):
    env = {k: v for k, v in os.environ.items() if k not in CONFIG_VARIABLES}
    env.update(overrides)
    return patch.dict(os.environ, env, clear=True)


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        with clean_environ():
            config = Config()
        self.assertEqual(config.search_threshold, 0.4)
        self.assertEqual(config.recents_limit, 20)
        self.assertEqual(config.version_query_timeout, 2.0)
        self.assertEqual(config.default_theme, "dark")
        self.assertTrue(config.origin.endswith("/"))

    def test_origin_gets_trailing_slash(self):
        with clean_environ(APPSHELL_ORIGIN="https://apps.example.com/shell"):
            self.assertEqual(Config().origin, "https://apps.example.com/shell/")

    def test_invalid_values_are_rejected(self):
        cases = [
            ("APPSHELL_SEARCH_THRESHOLD", "1.5"),
            ("APPSHELL_RECENTS_LIMIT", "0"),
            ("APPSHELL_UPDATE_FOUND_TIMEOUT", "0"),
            ("APPSHELL_AUTO_CHECK_DELAY", "-1"),
            ("APPSHELL_DEFAULT_THEME", "neon"),
        ]
        for name, value in cases:
            with self.subTest(name=name, value=value):
                with clean_environ(**{name: value}):
                    with self.assertRaises(ValueError):
                        Config()


if __name__ == "__main__":
    unittest.main()
