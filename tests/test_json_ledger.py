from __future__ import annotations

import json

from adapters.json_ledger import JsonLedger


def test_missing_file_starts_empty(tmp_path) -> None:
    ledger = JsonLedger(str(tmp_path / "storage" / "ledger.json"))
    assert ledger.count() == 0
    assert (tmp_path / "storage").is_dir()


def test_round_trip(tmp_path) -> None:
    path = str(tmp_path / "ledger.json")
    ledger = JsonLedger(path)
    for message_id in (3, 1, 2):
        ledger.mark_processed(message_id)

    reloaded = JsonLedger(path)
    assert set(reloaded.ids()) == {1, 2, 3}
    assert reloaded.ids() == [3, 1, 2]
    assert reloaded.is_processed(2)
    assert not reloaded.is_processed(4)


def test_snapshot_format(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    ledger = JsonLedger(str(path))
    ledger.mark_processed(42)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["messageIds"] == [42]
    assert isinstance(data["lastUpdated"], str)


def test_corrupt_file_falls_back_to_empty(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    path.write_text("{not json", encoding="utf-8")
    ledger = JsonLedger(str(path))
    assert ledger.count() == 0

    ledger.mark_processed(7)
    assert JsonLedger(str(path)).ids() == [7]


def test_cleanup_keeps_most_recent_insertions(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    ids = list(range(10_050, 0, -1))
    path.write_text(json.dumps({"messageIds": ids, "lastUpdated": None}), encoding="utf-8")
    ledger = JsonLedger(str(path))

    removed = ledger.cleanup(10_000)

    assert removed == 50
    assert ledger.count() == 10_000
    assert ledger.ids() == ids[50:]
    assert JsonLedger(str(path)).count() == 10_000


def test_cleanup_within_ceiling_is_noop(tmp_path) -> None:
    ledger = JsonLedger(str(tmp_path / "ledger.json"))
    ledger.mark_processed(1)
    assert ledger.cleanup(10) == 0
    assert ledger.ids() == [1]


def test_unwritable_path_keeps_working_in_memory(tmp_path) -> None:
    directory = tmp_path / "as_dir.json"
    directory.mkdir()
    ledger = JsonLedger(str(directory))
    ledger.mark_processed(5)
    assert ledger.is_processed(5)
