import json

import pytest

from alarms.storage import AlarmRecord, AlarmStore, JsonRecordStore


def _store(db_path, *numbers):
    store = AlarmStore(JsonRecordStore(db_path))
    store.load()
    for n in numbers:
        store.insert(AlarmRecord(number=n, name=f"a{n}", cron="0 9 * * *"))
    return store


def test_next_number_empty_store(db_path):
    assert _store(db_path).next_number() == 1


def test_next_number_is_max_plus_one_regardless_of_order(db_path):
    store = _store(db_path, 5, 2, 9, 3)
    assert store.next_number() == 10


def test_removing_highest_number_frees_it(db_path):
    store = _store(db_path, 1, 2, 3)
    assert store.remove(3) is True
    assert store.next_number() == 3


def test_removing_lower_number_does_not_free_it(db_path):
    store = _store(db_path, 1, 2, 3)
    store.remove(2)
    assert store.next_number() == 4


def test_remove_missing_returns_false(db_path):
    store = _store(db_path, 1)
    assert store.remove(7) is False
    assert [r.number for r in store.all_records()] == [1]


def test_insert_duplicate_number_rejected(db_path):
    store = _store(db_path, 1)
    with pytest.raises(ValueError):
        store.insert(AlarmRecord(number=1, name="dup", cron="* * * * *"))


def test_replace_keeps_position(db_path):
    store = _store(db_path, 1, 2, 3)
    store.replace(2, AlarmRecord(number=2, name="renamed", cron="0 9 * * *"))
    assert [r.name for r in store.all_records()] == ["a1", "renamed", "a3"]


def test_replace_missing_raises(db_path):
    store = _store(db_path)
    with pytest.raises(KeyError):
        store.replace(4, AlarmRecord(number=4, name="x", cron="* * * * *"))


def test_mutations_persist_before_returning(db_path):
    store = _store(db_path, 1, 2)
    store.remove(1)
    payload = json.loads(db_path.read_text(encoding="utf-8"))
    assert payload == {"alarms": [{"number": 2, "cron": "0 9 * * *", "name": "a2"}]}


def test_all_records_returns_a_copy(db_path):
    store = _store(db_path, 1)
    store.all_records().clear()
    assert len(store.all_records()) == 1


def test_failed_save_leaves_memory_untouched(db_path):
    class BrokenStore(JsonRecordStore):
        def save(self, records):
            raise OSError("disk full")

    store = AlarmStore(BrokenStore(db_path))
    with pytest.raises(OSError):
        store.insert(AlarmRecord(number=1, name="a", cron="* * * * *"))
    assert store.all_records() == []


def test_record_serialization_omits_unset_time_zone():
    assert AlarmRecord(1, "Wake up", "0 9 * * *").to_dict() == {"number": 1, "cron": "0 9 * * *", "name": "Wake up"}
    assert AlarmRecord(1, "Wake up", "0 9 * * *", "Europe/Paris").to_dict()["timeZone"] == "Europe/Paris"


def test_load_missing_file(db_path):
    assert JsonRecordStore(db_path).load() == []


def test_load_round_trip_through_disk(db_path):
    _store(db_path, 1, 2)
    reloaded = AlarmStore(JsonRecordStore(db_path))
    assert [r.number for r in reloaded.load()] == [1, 2]


def test_load_accepts_bare_list_and_skips_bad_items(db_path):
    db_path.parent.mkdir(parents=True)
    db_path.write_text(
        json.dumps(
            [
                {"number": 1, "cron": "0 9 * * *", "name": "ok", "timeZone": "Europe/Paris"},
                {"number": 0, "cron": "0 9 * * *", "name": "zero"},
                {"number": 2, "name": "no cron"},
                {"number": 1, "cron": "0 10 * * *", "name": "duplicate"},
                "garbage",
            ]
        ),
        encoding="utf-8",
    )
    records = JsonRecordStore(db_path).load()
    assert records == [AlarmRecord(number=1, name="ok", cron="0 9 * * *", time_zone="Europe/Paris")]


def test_load_corrupted_file(db_path):
    db_path.parent.mkdir(parents=True)
    db_path.write_text("{invalid json", encoding="utf-8")
    assert JsonRecordStore(db_path).load() == []
