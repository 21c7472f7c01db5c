import asyncio
import uuid

import pytest

from conftest import new_owner
from core import repository, state, users, wal
from core.errors import NotFoundError, ValidationError
from models.structure.table import Table

T1 = Table(sheet_name="Sheet1", headers=["A", "B"], rows=[[1, 2]])
T2 = Table(sheet_name="Sheet1", headers=["A", "B"], rows=[[3, 4], [5, 6]])


def run(coro):
    return asyncio.run(coro)


def test_upsert_replaces_in_place_and_keeps_id():
    owner = new_owner()

    first = run(repository.upsert_record(owner, "f.xlsx", T1))
    second = run(repository.upsert_record(owner, "f.xlsx", T2))

    assert second.id == first.id
    assert second.table == T2
    assert second.created_at == first.created_at
    assert second.version == 2
    assert run(repository.count_by_owner(owner)) == 1


def test_distinct_names_coexist():
    owner = new_owner()

    run(repository.upsert_record(owner, "a.xlsx", T1))
    run(repository.upsert_record(owner, "b.xlsx", T1))

    assert run(repository.count_by_owner(owner)) == 2
    assert run(repository.count_all()) == 2


def test_concurrent_upserts_of_one_key_create_one_record():
    owner = new_owner()

    async def upload_many():
        return await asyncio.gather(*[
            repository.upsert_record(owner, "same.csv", T1 if i % 2 else T2) for i in range(10)
        ])

    records = run(upload_many())

    assert len({r.id for r in records}) == 1
    assert run(repository.count_by_owner(owner)) == 1


def test_find_by_id_is_scoped_to_owner():
    owner_a, owner_b = new_owner(), new_owner()
    record = run(repository.upsert_record(owner_a, "f.xlsx", T1))

    assert run(repository.find_by_id(record.id, owner_a)).id == record.id

    with pytest.raises(NotFoundError) as foreign:
        run(repository.find_by_id(record.id, owner_b))
    with pytest.raises(NotFoundError) as missing:
        run(repository.find_by_id(uuid.uuid4(), owner_b))

    assert foreign.value.message == missing.value.message


def test_delete_by_id_is_scoped_to_owner():
    owner_a, owner_b = new_owner(), new_owner()
    record = run(repository.upsert_record(owner_a, "f.xlsx", T1))

    with pytest.raises(NotFoundError):
        run(repository.delete_by_id(record.id, owner_b))

    run(repository.delete_by_id(record.id, owner_a))
    assert run(repository.count_by_owner(owner_a)) == 0

    # the key is free again
    recreated = run(repository.upsert_record(owner_a, "f.xlsx", T2))
    assert recreated.id != record.id


def test_find_by_owner_pagination():
    owner = new_owner()
    for i in range(5):
        run(repository.upsert_record(owner, f"file{i}.csv", T1))

    first = run(repository.find_by_owner(owner, limit=2, skip=0))
    assert len(first.items) == 2
    assert first.total_count == 5
    assert first.has_more is True

    last = run(repository.find_by_owner(owner, limit=2, skip=4))
    assert len(last.items) == 1
    assert last.has_more is False


def test_find_by_owner_is_newest_first():
    owner = new_owner()
    run(repository.upsert_record(owner, "old.csv", T1))
    run(repository.upsert_record(owner, "new.csv", T1))
    run(repository.upsert_record(owner, "old.csv", T2))

    page = run(repository.find_by_owner(owner))
    assert [r.file_name for r in page.items] == ["old.csv", "new.csv"]
    assert run(repository.find_latest_by_owner(owner)).file_name == "old.csv"


def test_find_by_owner_rejects_negative_skip():
    with pytest.raises(ValidationError):
        run(repository.find_by_owner(uuid.uuid4(), skip=-1))


def test_aggregates():
    owner_a, owner_b = new_owner(), new_owner()
    run(repository.upsert_record(owner_a, "a.csv", T1))
    run(repository.upsert_record(owner_a, "b.csv", T1))
    run(repository.upsert_record(owner_b, "a.csv", T1))

    assert run(repository.count_all()) == 3
    assert set(run(repository.distinct_owners())) == {owner_a, owner_b}
    assert run(repository.delete_all_by_owner(owner_a)) == 2
    assert run(repository.distinct_owners()) == [owner_b]


def test_delete_user_cascades_records():
    owner = run(users.register_user("Carol", "carol@example.com", "secret123"))
    acting = run(users.register_user("Dave", "dave@example.com", "secret123"))
    run(repository.upsert_record(owner.id, "a.csv", T1))

    removed = run(users.delete_user(owner.id, acting_user_id=acting.id))

    assert removed == 1
    assert run(repository.count_all()) == 0
    with pytest.raises(NotFoundError):
        run(users.get_user(owner.id))


def test_delete_user_and_queued_upload_leave_no_orphans():
    owner = new_owner()
    acting = new_owner()
    run(repository.upsert_record(owner, "a.csv", T1))

    async def delete_while_uploading():
        return await asyncio.gather(
            users.delete_user(owner, acting_user_id=acting),
            repository.upsert_record(owner, "b.csv", T2),
            return_exceptions=True
        )

    removed, upload = run(delete_while_uploading())

    assert removed == 1
    assert isinstance(upload, NotFoundError)
    assert run(repository.count_by_owner(owner)) == 0
    assert run(repository.count_all()) == 0
    with pytest.raises(NotFoundError):
        run(users.get_user(owner))


def test_upsert_for_unknown_owner_is_rejected():
    with pytest.raises(NotFoundError):
        run(repository.upsert_record(uuid.uuid4(), "f.xlsx", T1))

    assert run(repository.count_all()) == 0


def test_self_delete_keeps_records():
    owner = new_owner()
    run(repository.upsert_record(owner, "a.csv", T1))

    with pytest.raises(ValidationError):
        run(users.delete_user(owner, acting_user_id=owner))

    assert run(repository.count_by_owner(owner)) == 1


def test_wal_replay_restores_records():
    owner = new_owner()
    record = run(repository.upsert_record(owner, "f.xlsx", T1))
    run(repository.upsert_record(owner, "f.xlsx", T2))
    run(repository.upsert_record(owner, "gone.xlsx", T1))
    gone = run(repository.find_latest_by_owner(owner))
    run(repository.delete_by_id(gone.id, owner))

    state.reset()
    wal.load_snapshot()
    wal.recover_from_wal()

    restored = run(repository.find_by_id(record.id, owner))
    assert restored.table == T2
    assert run(repository.count_by_owner(owner)) == 1


def test_checkpoint_then_reload():
    owner = new_owner()
    record = run(repository.upsert_record(owner, "f.xlsx", T1))

    wal.perform_checkpoint()
    state.reset()
    wal.load_snapshot()
    wal.recover_from_wal()

    assert run(repository.find_by_id(record.id, owner)).table == T1


def test_wipe_all_data_leaves_nothing_to_replay():
    owner = new_owner()
    run(repository.upsert_record(owner, "f.xlsx", T1))

    assert run(repository.wipe_all_data()) is True
    assert run(repository.count_all()) == 0
    assert run(users.count_users()) == 0

    state.reset()
    wal.load_snapshot()
    wal.recover_from_wal()

    assert run(repository.count_all()) == 0
    assert run(users.count_users()) == 0
