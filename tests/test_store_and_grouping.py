from __future__ import annotations

from fakes import make_track, make_tracks

from track_crawler.engines.store import TrackStore
from track_crawler.library.grouping import group_tracks


def test_add_is_idempotent_and_first_seen_wins() -> None:
    store = TrackStore()
    first = make_track(1, "Original")
    assert store.add([first]) == 1
    assert store.add([first]) == 0
    assert store.add([make_track(1, "Impostor")]) == 0

    assert store.size() == 1
    assert store.get(1) is first
    assert 1 in store and 2 not in store


def test_add_counts_only_new_ids_within_a_batch() -> None:
    store = TrackStore()
    batch = make_tracks(1, 3) + [make_track(2, "dup")]
    assert store.add(batch) == 3
    assert [t.id for t in store.all()] == [1, 2, 3]


def test_snapshot_is_not_affected_by_later_adds() -> None:
    store = TrackStore()
    store.add(make_tracks(1, 2))
    snapshot = store.all()
    store.add(make_tracks(10, 2))
    assert len(snapshot) == 2
    assert len(store) == 4


def test_group_tracks_scenario_orders_letters_then_sentinel() -> None:
    tracks = [make_track(1, "1984"), make_track(2, "Abba"), make_track(3, "zebra")]
    grouped = group_tracks(tracks)

    assert list(grouped) == ["A", "Z", "#"]
    assert [t.title for t in grouped["A"]] == ["Abba"]
    assert [t.title for t in grouped["Z"]] == ["zebra"]
    assert [t.title for t in grouped["#"]] == ["1984"]


def test_group_tracks_partitions_input_and_keeps_member_order() -> None:
    titles = ["banana", "Apple", "apricot", "!bang", "", "Éclair", "berry", "42"]
    tracks = [make_track(i, t) for i, t in enumerate(titles)]
    grouped = group_tracks(tracks)

    members = [t for bucket in grouped.values() for t in bucket]
    assert sorted(t.id for t in members) == list(range(len(titles)))
    assert [t.title for t in grouped["A"]] == ["Apple", "apricot"]
    assert [t.title for t in grouped["B"]] == ["banana", "berry"]
    assert [t.title for t in grouped["#"]] == ["!bang", "", "Éclair", "42"]
    assert list(grouped) == ["A", "B", "#"]


def test_group_key_order_is_independent_of_input_order() -> None:
    tracks = [make_track(1, "#hash"), make_track(2, "Zulu"), make_track(3, "Mike"), make_track(4, "alpha")]
    assert list(group_tracks(tracks)) == list(group_tracks(reversed(tracks))) == ["A", "M", "Z", "#"]


def test_group_tracks_empty_input() -> None:
    assert group_tracks([]) == {}
