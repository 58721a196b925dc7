"""
Tests for the in-memory and CSV aggregate stores.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from conftest import PLAYERS, make_match
from tenmans.errors import DuplicateMatchError, DuplicatePlayerError, NotFoundError, ValidationError
from tenmans.scoring.aggregates import apply_match
from tenmans.scoring.models import AggregateDelta
from tenmans.storage import CsvAggregateStore, InMemoryAggregateStore
from tenmans.storage import csv_store


@pytest.fixture(params=["memory", "csv"])
def any_store(request, tmp_path):
    if request.param == "memory":
        store = InMemoryAggregateStore()
    else:
        store = CsvAggregateStore(tmp_path)
    for name, tag in PLAYERS:
        store.add_player(name, tag)
    return store


class TestPlayerRegistry:
    """Tests for registering, renaming and removing players."""

    def test_new_player_is_all_zero(self, any_store):
        aggregate = any_store.add_player("Fresh", "NA")
        assert aggregate.matches_played == 0
        assert aggregate.total_kills == 0
        assert any_store.players_count() == len(PLAYERS) + 1

    def test_name_and_tag_stripped(self, any_store):
        any_store.add_player("  Spaced ", " EU ")
        assert any_store.get_aggregate("Spaced", "EU").name == "Spaced"

    def test_blank_rejected(self, any_store):
        with pytest.raises(ValidationError):
            any_store.add_player("", "EUW")
        with pytest.raises(ValidationError):
            any_store.add_player("Name", "   ")

    def test_duplicate_rejected(self, any_store):
        with pytest.raises(DuplicatePlayerError):
            any_store.add_player(*PLAYERS[0])

    def test_same_name_different_tag_allowed(self, any_store):
        any_store.add_player(PLAYERS[0][0], "KR")
        assert any_store.get_aggregate(PLAYERS[0][0], "KR").tag == "KR"

    def test_unknown_player(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.get_aggregate("Nobody", "EUW")

    def test_rename_keeps_counters_and_match_log(self, any_store):
        apply_match(make_match(match_id="m-1"), any_store)
        any_store.rename_player("Player0", "EUW", "Renamed", "EUW")

        aggregate = any_store.get_aggregate("Renamed", "EUW")
        assert aggregate.matches_played == 1
        with pytest.raises(NotFoundError):
            any_store.get_aggregate("Player0", "EUW")
        assert any_store.matches()[0].stats[0].name == "Renamed"

    def test_rename_onto_existing_rejected(self, any_store):
        with pytest.raises(DuplicatePlayerError):
            any_store.rename_player("Player0", "EUW", "Player1", "EUW")

    def test_rename_unknown(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.rename_player("Nobody", "EUW", "Somebody", "EUW")

    def test_remove_keeps_match_log(self, any_store):
        apply_match(make_match(match_id="m-1"), any_store)
        any_store.remove_player("Player0", "EUW")

        assert any_store.players_count() == len(PLAYERS) - 1
        assert any_store.matches_count() == 1
        assert any_store.matches()[0].stats[0].name == "Player0"

    def test_remove_unknown(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.remove_player("Nobody", "EUW")


class TestPlayerProfile:
    """Tests for badges and social links."""

    def test_new_player_has_empty_profile(self, any_store):
        aggregate = any_store.get_aggregate(*PLAYERS[0])
        assert aggregate.badges == ()
        assert aggregate.social == {}

    def test_add_with_profile(self, any_store):
        any_store.add_player("Ace", "EUW", badges=[" MVP ", "", "Season 1"], social={"twitch": " ace_tv "})
        aggregate = any_store.get_aggregate("Ace", "EUW")
        assert aggregate.badges == ("MVP", "Season 1")
        assert aggregate.social == {"twitch": "ace_tv"}

    @pytest.mark.parametrize("badges,social", [("MVP", None), ([1], None), (None, ["twitch"]), (None, {"x": 5})])
    def test_bad_profile_rejected(self, any_store, badges, social):
        with pytest.raises(ValidationError):
            any_store.add_player("Ace", "EUW", badges=badges, social=social)
        with pytest.raises(NotFoundError):
            any_store.get_aggregate("Ace", "EUW")

    def test_update_profile_keeps_counters(self, any_store):
        apply_match(make_match(match_id="m-1"), any_store)
        any_store.update_profile("Player0", "EUW", badges=["Winter Cup"])
        any_store.update_profile("Player0", "EUW", social={"x": "@player0"})

        aggregate = any_store.get_aggregate("Player0", "EUW")
        assert aggregate.badges == ("Winter Cup",)
        assert aggregate.social == {"x": "@player0"}
        assert aggregate.matches_played == 1

    def test_update_profile_unknown(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.update_profile("Nobody", "EUW", badges=["MVP"])

    def test_rename_can_replace_social(self, any_store):
        any_store.update_profile("Player0", "EUW", badges=["MVP"], social={"x": "@old"})
        renamed = any_store.rename_player("Player0", "EUW", "Renamed", "EUW", social={"twitch": "renamed"})

        assert renamed.social == {"twitch": "renamed"}
        assert renamed.badges == ("MVP",)
        assert any_store.get_aggregate("Renamed", "EUW") == renamed

    def test_matches_leave_profile_alone(self, any_store):
        any_store.update_profile("Player0", "EUW", badges=["MVP"])
        apply_match(make_match(), any_store)
        assert any_store.get_aggregate("Player0", "EUW").badges == ("MVP",)


class TestTransactions:
    """Tests for transaction commit and rollback."""

    def test_rollback_on_error(self, any_store):
        delta = AggregateDelta(kills=10)
        with pytest.raises(RuntimeError):
            with any_store.transaction():
                any_store.increment_aggregate("Player0", "EUW", delta, True)
                raise RuntimeError("boom")

        assert any_store.get_aggregate("Player0", "EUW").matches_played == 0

    def test_nested_transactions_commit_once(self, any_store):
        delta = AggregateDelta(kills=3)
        with any_store.transaction():
            with any_store.transaction():
                any_store.increment_aggregate("Player0", "EUW", delta, False)
            any_store.increment_aggregate("Player0", "EUW", delta, False)

        aggregate = any_store.get_aggregate("Player0", "EUW")
        assert aggregate.matches_played == 2
        assert aggregate.total_kills == 6

    def test_concurrent_submissions_do_not_lose_updates(self, any_store):
        def submit():
            for _ in range(5):
                apply_match(make_match(), any_store)

        threads = [threading.Thread(target=submit) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for name, tag in PLAYERS:
            assert any_store.get_aggregate(name, tag).matches_played == 20
        assert any_store.matches_count() == 20


class TestCsvAggregateStore:
    """Tests specific to the CSV-backed store."""

    def test_persists_across_instances(self, tmp_path):
        store = CsvAggregateStore(tmp_path)
        for name, tag in PLAYERS:
            store.add_player(name, tag)
        apply_match(make_match(match_id="m-1", winner_team="B", kills=9, hs_percent=50), store)

        reopened = CsvAggregateStore(tmp_path)
        aggregate = reopened.get_aggregate("Player7", "EUW")
        assert aggregate.matches_played == 1
        assert aggregate.wins == 1
        assert aggregate.total_kills == 9
        assert aggregate.total_headshot_kills == 5

        match = reopened.matches()[0]
        assert match.match_id == "m-1"
        assert match.winner_team == "B"
        assert [s.name for s in match.stats] == [name for name, _ in PLAYERS]
        assert reopened.has_match("m-1")
        assert reopened.last_match_at() == store.last_match_at()

    def test_failed_match_leaves_files_untouched(self, tmp_path):
        store = CsvAggregateStore(tmp_path)
        for name, tag in PLAYERS:
            store.add_player(name, tag)
        before = store.players_path.read_text()
        matches_before = store.matches_path.read_text()

        with pytest.raises(NotFoundError):
            apply_match(make_match(players=PLAYERS[:9] + [("Ghost", "EUW")]), store)

        assert store.players_path.read_text() == before
        assert store.matches_path.read_text() == matches_before

    def test_identity_text_not_coerced(self, tmp_path):
        store = CsvAggregateStore(tmp_path)
        store.add_player("NA", "001")

        reopened = CsvAggregateStore(tmp_path)
        assert reopened.get_aggregate("NA", "001").name == "NA"

    def test_empty_folder(self, tmp_path):
        store = CsvAggregateStore(tmp_path / "new")
        assert store.all_aggregates() == []
        assert store.matches_count() == 0
        assert store.last_match_at() is None

    def test_match_stats_for_player(self, tmp_path):
        store = CsvAggregateStore(tmp_path)
        for name, tag in PLAYERS:
            store.add_player(name, tag)
        apply_match(make_match(match_id="m-1", kills=10), store)
        apply_match(make_match(match_id="m-2", kills=12), store)

        history = store.match_stats("Player3", "EUW")
        assert [match.match_id for match, _ in history] == ["m-1", "m-2"]
        assert [stat.kills for _, stat in history] == [10, 12]

    def test_profile_persists(self, tmp_path):
        store = CsvAggregateStore(tmp_path)
        store.add_player("Ace", "EUW", badges=["MVP", "Season 1"], social={"twitch": "ace_tv", "x": "@ace"})

        aggregate = CsvAggregateStore(tmp_path).get_aggregate("Ace", "EUW")
        assert aggregate.badges == ("MVP", "Season 1")
        assert aggregate.social == {"twitch": "ace_tv", "x": "@ace"}

    def test_failed_match_log_write_rolls_back(self, tmp_path, monkeypatch):
        store = CsvAggregateStore(tmp_path)
        for name, tag in PLAYERS:
            store.add_player(name, tag)
        players_before = store.players_path.read_text()

        real_write = csv_store.atomic_write_csv

        def failing_write(df, path, **kwargs):
            if path.name == store.matches_path.name:
                raise OSError("disk full")
            real_write(df, path, **kwargs)

        monkeypatch.setattr(csv_store, "atomic_write_csv", failing_write)
        with pytest.raises(OSError):
            apply_match(make_match(match_id="m-1"), store)
        monkeypatch.setattr(csv_store, "atomic_write_csv", real_write)

        assert store.players_path.read_text() == players_before
        reopened = CsvAggregateStore(tmp_path)
        assert not reopened.has_match("m-1")
        assert reopened.get_aggregate("Player0", "EUW").matches_played == 0

        apply_match(make_match(match_id="m-1"), reopened)
        with pytest.raises(DuplicateMatchError):
            apply_match(make_match(match_id="m-1"), reopened)
        assert reopened.get_aggregate("Player0", "EUW").matches_played == 1

    def test_failed_first_write_leaves_no_players_file(self, tmp_path, monkeypatch):
        store = CsvAggregateStore(tmp_path)

        def failing_write(df, path, **kwargs):
            raise OSError("read-only")

        monkeypatch.setattr(csv_store, "atomic_write_csv", failing_write)
        with pytest.raises(OSError):
            store.add_player("Ace", "EUW")

        assert not store.players_path.exists()
        assert store.players_count() == 0


class TestMatchTimes:
    """Tests for match timestamps in the log."""

    def test_naive_and_aware_times_compare(self, any_store):
        apply_match(make_match(match_id="m-1"), any_store)
        apply_match(make_match(match_id="m-2", played_at=datetime(2025, 3, 14, 20, 0)), any_store)

        assert any_store.last_match_at() == any_store.matches()[0].played_at
        logged = {m.match_id: m.played_at for m in any_store.matches()}
        assert logged["m-2"] == datetime(2025, 3, 14, 20, 0, tzinfo=timezone.utc)

    def test_aware_times_stored_as_utc(self, any_store):
        played = datetime(2025, 3, 14, 22, 0, tzinfo=timezone(timedelta(hours=2)))
        apply_match(make_match(match_id="m-1", played_at=played), any_store)

        stored = any_store.matches()[0].played_at
        assert stored == played
        assert stored.tzinfo == timezone.utc
