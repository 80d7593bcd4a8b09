"""
Tests for SortOrderRebalancer.
"""
import pytest

from betterdoit.exceptions import RebalanceError, StorageError
from betterdoit.services.rebalance_service import SortOrderRebalancer, has_drift

from conftest import run

OWNER = "user-1"


@pytest.fixture
def rebalancer(adapter):
    return SortOrderRebalancer(adapter)


def open_ids_and_keys(task_repo, is_active):
    tasks = run(task_repo.list_by_owner_and_partition(OWNER, is_active, False))
    return [t.id for t in tasks], [t.sort_order for t in tasks]


class TestRebalance:
    """Tests for rebalance."""

    def test_renumbers_to_canonical_keys_preserving_order(self, task_repo, rebalancer):
        tasks = [run(task_repo.create(OWNER, f"m{i}")) for i in range(4)]
        for task, key in zip(tasks, (7, 3, 4, 5)):
            run(task_repo.reorder(task.id, OWNER, key))
        before_ids, _ = open_ids_and_keys(task_repo, False)

        result = run(rebalancer.rebalance(OWNER))

        after_ids, after_keys = open_ids_and_keys(task_repo, False)
        assert after_ids == before_ids
        assert after_keys == [1000, 2000, 3000, 4000]
        assert result.master_tasks_fixed == 4
        assert result.active_tasks_fixed == 0
        assert result.to_api() == {"activeTasksFixed": 0, "masterTasksFixed": 4}

    def test_both_partitions_are_renumbered(self, task_repo, rebalancer):
        for i in range(2):
            task = run(task_repo.create(OWNER, f"a{i}", is_active=True))
            run(task_repo.reorder(task.id, OWNER, 10 + i))
        run(task_repo.create(OWNER, "m"))

        result = run(rebalancer.rebalance(OWNER))
        assert (result.active_tasks_fixed, result.master_tasks_fixed) == (2, 1)
        assert open_ids_and_keys(task_repo, True)[1] == [1000, 2000]

    def test_duplicate_keys_are_separated(self, adapter, task_repo, rebalancer):
        a = run(task_repo.create(OWNER, "a"))
        b = run(task_repo.create(OWNER, "b"))
        # Simulate a concurrent-write collision that reorder refuses to create
        run(adapter.prepare("UPDATE task SET sortOrder = 500").run())

        run(rebalancer.rebalance(OWNER))
        ids, keys = open_ids_and_keys(task_repo, False)
        assert keys == [1000, 2000]
        assert set(ids) == {a.id, b.id}

    def test_is_idempotent(self, task_repo, rebalancer):
        for i in range(3):
            task = run(task_repo.create(OWNER, f"m{i}"))
            run(task_repo.reorder(task.id, OWNER, 100 - i))
        run(rebalancer.rebalance(OWNER))
        first = open_ids_and_keys(task_repo, False)

        run(rebalancer.rebalance(OWNER))
        assert open_ids_and_keys(task_repo, False) == first

    def test_completed_tasks_are_not_touched(self, task_repo, rebalancer):
        done = run(task_repo.create(OWNER, "done"))
        run(task_repo.reorder(done.id, OWNER, 42))
        run(task_repo.set_completed(done.id, OWNER, True))
        run(task_repo.create(OWNER, "open"))

        result = run(rebalancer.rebalance(OWNER))
        assert result.master_tasks_fixed == 1
        assert run(task_repo.get(done.id, OWNER)).sort_order == 42

    def test_other_owners_are_not_touched(self, task_repo, rebalancer):
        theirs = run(task_repo.create("user-2", "theirs"))
        run(task_repo.reorder(theirs.id, "user-2", 5))

        run(rebalancer.rebalance(OWNER))
        assert run(task_repo.get(theirs.id, "user-2")).sort_order == 5

    def test_empty_owner(self, rebalancer):
        result = run(rebalancer.rebalance(OWNER))
        assert result.to_api() == {"activeTasksFixed": 0, "masterTasksFixed": 0}


class FailingActiveRebalancer(SortOrderRebalancer):
    """Rebalancer whose active partition always fails to write."""

    async def _renumber_partition(self, owner_id, is_active):
        if is_active:
            raise StorageError("disk I/O error", operation="UPDATE")
        return await super()._renumber_partition(owner_id, is_active)


def test_failed_partition_does_not_undo_the_other(adapter, task_repo):
    run(task_repo.create(OWNER, "a", is_active=True))
    master = run(task_repo.create(OWNER, "m"))
    run(task_repo.reorder(master.id, OWNER, 7))

    with pytest.raises(RebalanceError) as exc_info:
        run(FailingActiveRebalancer(adapter).rebalance(OWNER))

    result = exc_info.value.result
    assert result.master_tasks_fixed == 1
    assert "active" in result.errors
    assert isinstance(exc_info.value, StorageError)
    assert run(task_repo.get(master.id, OWNER)).sort_order == 1000


class TestDrift:
    """Tests for drift detection."""

    @pytest.mark.parametrize("keys,expected", [
        ([], False),
        ([1000], False),
        ([1000, 2000, 3000], False),
        ([1000, 1002], False),
        ([1000, 1001], True),
        ([3000, 1000, 3000], True),
    ])
    def test_has_drift(self, keys, expected):
        assert has_drift(keys) is expected

    def test_rebalance_if_needed(self, task_repo, rebalancer):
        a = run(task_repo.create(OWNER, "a"))
        run(task_repo.create(OWNER, "b"))
        assert run(rebalancer.rebalance_if_needed(OWNER)) is False

        run(task_repo.reorder(a.id, OWNER, 1999))
        assert run(rebalancer.needs_rebalance(OWNER, False)) is True
        assert run(rebalancer.rebalance_if_needed(OWNER)) is True
        assert run(rebalancer.needs_rebalance(OWNER, False)) is False
