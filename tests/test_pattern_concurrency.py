import threading

import pytest

from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.persistence.sql_repository import SQLPlanRepository
from plan_library.planning.templates import get_template


TENANT = "t1"
WORKERS = 8
UPDATES_PER_WORKER = 10


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryPlanRepository()
    return SQLPlanRepository(f"sqlite:///{tmp_path / 'patterns.db'}")


def test_concurrent_updates_are_not_lost(store):
    plan = store.store_plan(TENANT, get_template("code.fix_tests"))
    pattern_id = store.get_pattern_for_plan(TENANT, plan.id).id
    errors = []

    def worker(index):
        try:
            for n in range(UPDATES_PER_WORKER):
                if (index + n) % 4 == 0:
                    store.record_failure(TENANT, pattern_id)
                else:
                    store.record_success(TENANT, pattern_id)
        except Exception as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    pattern = store.get_pattern_for_plan(TENANT, plan.id)
    failures = sum(
        1
        for i in range(WORKERS)
        for n in range(UPDATES_PER_WORKER)
        if (i + n) % 4 == 0
    )
    assert pattern.usage_count == WORKERS * UPDATES_PER_WORKER
    assert pattern.failure_count == failures
    assert pattern.success_count == WORKERS * UPDATES_PER_WORKER - failures
    assert pattern.success_count + pattern.failure_count == pattern.usage_count
    assert pattern.success_rate == pytest.approx(pattern.success_count / pattern.usage_count)
