import unittest

from audio_curate.heuristics import (
    canonical_folder_name,
    parse_album_folder_name,
    parse_year,
    sanitize_path_component,
)


class TestFolderParsing(unittest.TestCase):
    def test_leading_year(self) -> None:
        guess = parse_album_folder_name("1959 - Kind of Blue")
        self.assertEqual((guess.album, guess.year), ("Kind of Blue", 1959))
        guess = parse_album_folder_name("[1972] Fratres")
        self.assertEqual((guess.album, guess.year), ("Fratres", 1972))

    def test_trailing_year(self) -> None:
        guess = parse_album_folder_name("Kind of Blue (1959)")
        self.assertEqual((guess.album, guess.year), ("Kind of Blue", 1959))
        guess = parse_album_folder_name("Tabula Rasa [1984]")
        self.assertEqual((guess.album, guess.year), ("Tabula Rasa", 1984))

    def test_no_year(self) -> None:
        guess = parse_album_folder_name("Water From an Ancient Well")
        self.assertEqual((guess.album, guess.year), ("Water From an Ancient Well", None))

    def test_year_only_name_keeps_the_name(self) -> None:
        guess = parse_album_folder_name("1999")
        self.assertEqual(guess.album, "1999")
        self.assertIsNone(guess.year)

    def test_underscores_are_spaces(self) -> None:
        self.assertEqual(parse_album_folder_name("2001_-_Blue_Train").album, "Blue Train")


class TestNames(unittest.TestCase):
    def test_canonical_folder_name(self) -> None:
        self.assertEqual(canonical_folder_name("Kind of Blue", 1959), "1959 - Kind of Blue")
        self.assertEqual(canonical_folder_name("Kind of Blue", None), "Kind of Blue")
        self.assertEqual(canonical_folder_name("AC/DC: Live", 1992), "1992 - AC DC Live")

    def test_sanitize_path_component(self) -> None:
        self.assertEqual(sanitize_path_component('What? "Now"'), "What Now")
        self.assertEqual(sanitize_path_component("..."), "Unknown Album")

    def test_parse_year(self) -> None:
        self.assertEqual(parse_year("1959-08-17"), 1959)
        self.assertEqual(parse_year(2003), 2003)
        self.assertIsNone(parse_year("12345"))
        self.assertIsNone(parse_year(None))


if __name__ == "__main__":
    unittest.main()
