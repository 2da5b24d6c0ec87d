import asyncio
import unittest

from audio_curate.album_matching import AlbumMatchPipeline, build_queries
from audio_curate.models import ConfidenceTier, RemoteArtist
from audio_curate.providers.catalog import CatalogNetworkError

from catalog_fakes import FakeCatalog, local_folder, remote_album

MILES = RemoteArtist(id="a1", name="Miles Davis")


def _catalog(**kwargs) -> FakeCatalog:
    return FakeCatalog(
        artists=[MILES],
        albums=[
            remote_album("r1", "Kind of Blue", "Miles Davis", 1959, artist_id="a1"),
            remote_album("r2", "Milestones", "Miles Davis", 1958, artist_id="a1"),
            remote_album("r3", "Kind of Blue", "Tony Scott", 1959, artist_id="t1"),
            remote_album("g1", "Greatest Hits", "Miles Davis", 1981, artist_id="a1"),
            remote_album("g2", "Greatest Hits", "Miles Davis", 1992, artist_id="a1"),
        ],
        **kwargs,
    )


class TestAlbumMatchPipeline(unittest.TestCase):
    def test_one_result_per_folder_in_order(self) -> None:
        folders = [
            local_folder("1959 - Kind of Blue", "Kind of Blue", 1959),
            local_folder("Live Bootleg", "Live Bootleg"),
            local_folder("Unreleased Tapes", "Unreleased Tapes"),
            local_folder("1958 - Milestones", "Milestones", 1958),
        ]
        results = AlbumMatchPipeline(_catalog()).compare_albums(folders, MILES, ["*bootleg*"])
        self.assertEqual([r.folder for r in results], folders)
        self.assertIs(results[0].tier, ConfidenceTier.HIGH)
        self.assertEqual(results[0].best.remote_album.id, "r1")
        self.assertEqual(results[0].query_tier, "artist_album_year")
        self.assertTrue(results[1].excluded)
        self.assertIs(results[1].tier, ConfidenceTier.NONE)
        self.assertIsNone(results[2].best)
        self.assertIs(results[2].tier, ConfidenceTier.NONE)
        self.assertIs(results[3].tier, ConfidenceTier.HIGH)

    def test_excluded_folder_is_never_searched(self) -> None:
        client = _catalog()
        AlbumMatchPipeline(client).compare_albums(
            [local_folder("Live BOOTLEG", "Live Bootleg")], MILES, ["*bootleg*"]
        )
        self.assertEqual(client.calls, [])

    def test_falls_back_to_looser_queries(self) -> None:
        folder = local_folder("1960 - Kind of Blue", "Kind of Blue", 1960)
        result = AlbumMatchPipeline(_catalog()).compare_album(folder, MILES)
        self.assertEqual(result.query_tier, "artist_album")
        self.assertEqual(result.best.remote_album.id, "r1")
        self.assertAlmostEqual(result.score, 1.0)
        self.assertIs(result.tier, ConfidenceTier.MEDIUM)

    def test_other_artists_album_does_not_win(self) -> None:
        folder = local_folder("Kind of Blue", "Kind of Blue")
        result = AlbumMatchPipeline(_catalog()).compare_album(folder, RemoteArtist(id="", name="Abdullah Ibrahim"))
        self.assertEqual(result.query_tier, "album")
        self.assertLessEqual(result.score, 0.3)
        self.assertIn(result.tier, (ConfidenceTier.LOW, ConfidenceTier.NONE))

    def test_ambiguous_match_is_capped_at_low(self) -> None:
        folder = local_folder("Greatest Hits", "Greatest Hits")
        result = AlbumMatchPipeline(_catalog()).compare_album(folder, MILES)
        self.assertTrue(result.ambiguous)
        self.assertIs(result.tier, ConfidenceTier.LOW)
        self.assertEqual(len(result.candidates), 2)

    def test_lookup_errors_are_isolated_per_folder(self) -> None:
        def fail(call: str):
            if "'Broken'" in call:
                return CatalogNetworkError("connection reset")
            if "'Exploding'" in call:
                return RuntimeError("boom")
            return None

        folders = [
            local_folder("Broken", "Broken"),
            local_folder("1959 - Kind of Blue", "Kind of Blue", 1959),
            local_folder("Exploding", "Exploding"),
        ]
        with self.assertLogs("audio_curate.album_matching", level="WARNING"):
            results = AlbumMatchPipeline(_catalog(fail_with=fail)).compare_albums(folders, MILES)
        self.assertEqual(len(results), 3)
        self.assertEqual(results[0].error, "CatalogNetworkError: connection reset")
        self.assertIs(results[0].tier, ConfidenceTier.NONE)
        self.assertIs(results[1].tier, ConfidenceTier.HIGH)
        self.assertEqual(results[2].error, "RuntimeError: boom")

    def test_repeated_runs_assign_identical_tiers(self) -> None:
        folders = [
            local_folder("1959 - Kind of Blue", "Kind of Blue", 1959),
            local_folder("Greatest Hits", "Greatest Hits"),
            local_folder("Milestones", "Milestones"),
        ]
        pipeline = AlbumMatchPipeline(_catalog())
        first = [(r.tier, r.best.remote_album.id) for r in pipeline.compare_albums(folders, MILES)]
        second = [(r.tier, r.best.remote_album.id) for r in pipeline.compare_albums(folders, MILES)]
        self.assertEqual(first, second)

    def test_async_matches_sync_results(self) -> None:
        folders = [
            local_folder("1959 - Kind of Blue", "Kind of Blue", 1959),
            local_folder("Live Bootleg", "Live Bootleg"),
            local_folder("1958 - Milestones", "Milestones", 1958),
            local_folder("Greatest Hits", "Greatest Hits"),
        ]
        pipeline = AlbumMatchPipeline(_catalog())
        sync_results = pipeline.compare_albums(folders, MILES, ["*bootleg*"])
        async_results = asyncio.run(
            pipeline.compare_albums_async(folders, MILES, ["*bootleg*"], worker_concurrency=2)
        )
        self.assertEqual(async_results, sync_results)

    def test_without_resolved_artist_only_album_query_runs(self) -> None:
        folder = local_folder("1958 - Milestones", "Milestones", 1958)
        result = AlbumMatchPipeline(_catalog()).compare_album(folder, None)
        self.assertEqual(result.query_tier, "album")
        self.assertEqual(result.best.artist_score, 1.0)
        self.assertIs(result.tier, ConfidenceTier.HIGH)


class TestBuildQueries(unittest.TestCase):
    def test_query_tiers(self) -> None:
        folder = local_folder("1959 - Kind of Blue", "Kind of Blue", 1959)
        self.assertEqual(
            [name for name, _ in build_queries(folder, "Miles Davis")],
            ["artist_album_year", "artist_album", "album"],
        )
        self.assertEqual([name for name, _ in build_queries(folder, None)], ["album"])
        no_year = local_folder("Kind of Blue", "Kind of Blue")
        self.assertEqual([name for name, _ in build_queries(no_year, "Miles Davis")], ["artist_album", "album"])


if __name__ == "__main__":
    unittest.main()
