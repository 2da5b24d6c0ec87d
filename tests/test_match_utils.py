import unittest

from audio_curate.match_utils import (
    StringSimilarity,
    combine_similarity,
    normalize_match_text,
    similarity,
)


class TestStringSimilarity(unittest.TestCase):
    def test_identical_strings_score_one(self) -> None:
        for value in ("Kind of Blue", "!!!", "  Spaced   Out ", "Pärt", "x"):
            self.assertEqual(similarity(value, value), 1.0)

    def test_case_and_whitespace_are_ignored(self) -> None:
        self.assertEqual(similarity("Kind  of BLUE", "kind of blue"), 1.0)

    def test_empty_sides(self) -> None:
        self.assertEqual(similarity("Kind of Blue", ""), 0.0)
        self.assertEqual(similarity("", "Kind of Blue"), 0.0)
        self.assertEqual(similarity("", ""), 1.0)
        self.assertEqual(similarity(None, None), 1.0)

    def test_symmetric(self) -> None:
        pairs = [
            ("Fratres", "Arvo Pärt: Fratres"),
            ("Blue Train", "Blue Trane"),
            ("A Love Supreme", "Love Supreme, A"),
            ("Tabula Rasa", "Spiegel im Spiegel"),
        ]
        for a, b in pairs:
            self.assertEqual(similarity(a, b), similarity(b, a))

    def test_diacritics_and_punctuation_are_stripped(self) -> None:
        self.assertEqual(normalize_match_text("Arvo Pärt: Fratres!"), "arvo part fratres")
        self.assertEqual(similarity("Pärt", "Part"), 1.0)

    def test_prefixed_title_scores_reasonably_high(self) -> None:
        score = similarity("Fratres", "Arvo Pärt: Fratres")
        self.assertGreaterEqual(score, 0.6)
        self.assertLessEqual(score, 0.8)

    def test_reordered_words_score_high(self) -> None:
        self.assertGreater(similarity("Love Supreme, A", "A Love Supreme"), 0.8)

    def test_unrelated_titles_score_low(self) -> None:
        self.assertLess(similarity("Abdullah Ibrahim", "Tony Scott"), 0.3)

    def test_results_are_bounded(self) -> None:
        for a, b in [("a", "b"), ("abc", "abcd"), ("one two", "two one three")]:
            score = similarity(a, b)
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    def test_lone_surrogates_do_not_raise(self) -> None:
        score = similarity("Bad\udcffName", "Bad Name")
        self.assertGreaterEqual(score, 0.0)

    def test_punctuation_set_is_configurable(self) -> None:
        keeps_plus = StringSimilarity(punctuation="-")
        self.assertEqual(keeps_plus.normalize("A+B-C"), "a+b c")
        self.assertEqual(normalize_match_text("A+B-C"), "a b c")

    def test_non_latin_text_is_kept(self) -> None:
        self.assertEqual(similarity("坂本龍一", "坂本龍一"), 1.0)
        self.assertLess(similarity("坂本龍一", "細野晴臣"), 0.5)


class TestSimilarityHelpers(unittest.TestCase):
    def test_combine_similarity_weights(self) -> None:
        self.assertIsNone(combine_similarity(None, None))
        self.assertAlmostEqual(combine_similarity(1.0, None), 1.0)
        self.assertAlmostEqual(
            combine_similarity(0.0, 1.0, title_weight=0.3, duration_weight=0.7), 0.7
        )


if __name__ == "__main__":
    unittest.main()
