import unittest

from appshell.fuzzy_matcher import damerau_levenshtein, fuzzy_score


class TestDamerauLevenshtein(unittest.TestCase):
    def test_distance_to_self_is_zero(self):
        for word in ["", "a", "kanban", "Todo List"]:
            with self.subTest(word=word):
                self.assertEqual(damerau_levenshtein(word, word), 0)

    def test_distance_is_symmetric(self):
        pairs = [("kitten", "sitting"), ("notes", "ntoes"), ("habit", "rabbit"), ("", "pomodoro")]
        for a, b in pairs:
            with self.subTest(a=a, b=b):
                self.assertEqual(damerau_levenshtein(a, b), damerau_levenshtein(b, a))

    def test_distance_from_empty_is_length(self):
        self.assertEqual(damerau_levenshtein("", "board"), 5)
        self.assertEqual(damerau_levenshtein("board", ""), 5)

    def test_transposition_counts_once(self):
        """Swapped neighbours cost one edit, not two substitutions."""
        self.assertEqual(damerau_levenshtein("ab", "ba"), 1)
        self.assertEqual(damerau_levenshtein("ntoes", "notes"), 1)

    def test_classic_distances(self):
        self.assertEqual(damerau_levenshtein("kitten", "sitting"), 3)
        self.assertEqual(damerau_levenshtein("kanbn", "kanban"), 1)


class TestFuzzyScore(unittest.TestCase):
    def test_substring_scores_zero(self):
        self.assertEqual(fuzzy_score("not", "Notes App"), 0)
        self.assertEqual(fuzzy_score("TODO", "todo list"), 0)

    def test_typo_scores_by_best_word(self):
        # One edit against the six-letter word "kanban"
        self.assertAlmostEqual(fuzzy_score("kanbn", "Kanban Board"), 1 / 6)

    def test_unrelated_text_scores_high(self):
        self.assertGreater(fuzzy_score("zzzzz", "Todo List"), 0.5)

    def test_empty_inputs_saturate(self):
        self.assertEqual(fuzzy_score("", "Notes"), 1.0)
        self.assertEqual(fuzzy_score("notes", ""), 1.0)

    def test_score_stays_in_unit_interval(self):
        for query, text in [("x", "a much longer description"), ("pomodoro", "timer")]:
            with self.subTest(query=query):
                self.assertTrue(0.0 <= fuzzy_score(query, text) <= 1.0)


if __name__ == "__main__":
    unittest.main()
