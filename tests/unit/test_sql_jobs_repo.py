from __future__ import annotations

import pytest

from clusterops.jobs.errors import JobValidationError
from clusterops.jobs.models import JOB_STATUSES, JobTargets
from clusterops.storage.sql_jobs_repo import SqlJobsRepository


@pytest.fixture
def repo(session_factory) -> SqlJobsRepository:
  return SqlJobsRepository(session_factory)


@pytest.mark.anyio
async def test_create_job_defaults(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("CREATE_CLUSTER", JobTargets(cluster_id="c1", project_id="p1", org_id="o1"), {"plan": "DEV"})

  assert job.status == "pending"
  assert job.attempts == 0
  assert job.max_attempts == 3
  assert job.payload == {"plan": "DEV"}
  assert job.target_cluster_id == "c1"
  assert job.started_at is None
  assert job.completed_at is None


@pytest.mark.anyio
async def test_create_job_rejects_unknown_type_and_zero_attempts(repo: SqlJobsRepository) -> None:
  with pytest.raises(JobValidationError):
    await repo.create_job("REBOOT_CLUSTER")  # type: ignore[arg-type]
  with pytest.raises(JobValidationError):
    await repo.create_job("SYNC_STATUS", max_attempts=0)


@pytest.mark.anyio
async def test_find_pending_jobs_is_fifo_and_capped(repo: SqlJobsRepository) -> None:
  created = [await repo.create_job("SYNC_STATUS", JobTargets(cluster_id=f"c{index}")) for index in range(4)]
  await repo.claim_job(created[1].id)

  pending = await repo.find_pending_jobs(limit=2)

  assert [job.id for job in pending] == [created[0].id, created[2].id]


@pytest.mark.anyio
async def test_start_job_increments_attempts_once(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS")

  started = await repo.start_job(job.id)

  assert started is not None
  assert started.status == "in_progress"
  assert started.attempts == 1
  assert started.started_at is not None


@pytest.mark.anyio
async def test_start_job_unknown_id_returns_none(repo: SqlJobsRepository) -> None:
  assert await repo.start_job("missing") is None
  assert await repo.complete_job("missing") is None
  assert await repo.fail_job("missing", "boom") is None


@pytest.mark.anyio
async def test_claim_job_only_wins_once(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS")

  first = await repo.claim_job(job.id)
  second = await repo.claim_job(job.id)

  assert first is not None
  assert first.attempts == 1
  assert second is None


@pytest.mark.anyio
async def test_fail_job_requeues_until_budget_exhausted(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS", max_attempts=2)

  await repo.claim_job(job.id)
  after_first = await repo.fail_job(job.id, "first failure")
  assert after_first is not None
  assert after_first.status == "pending"
  assert after_first.last_error == "first failure"
  assert after_first.completed_at is None

  await repo.claim_job(job.id)
  after_second = await repo.fail_job(job.id, "second failure")
  assert after_second is not None
  assert after_second.status == "failed"
  assert after_second.attempts == 2
  assert after_second.completed_at is not None

  assert await repo.claim_job(job.id) is None


@pytest.mark.anyio
async def test_fail_job_without_retry_is_terminal(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS", max_attempts=5)
  await repo.claim_job(job.id)

  failed = await repo.fail_job(job.id, "bad payload", should_retry=False)

  assert failed is not None
  assert failed.status == "failed"


@pytest.mark.anyio
async def test_complete_job_stores_result(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS")
  await repo.claim_job(job.id)

  done = await repo.complete_job(job.id, {"phase": "Running"})

  assert done is not None
  assert done.status == "success"
  assert done.result == {"phase": "Running"}
  assert done.completed_at is not None


@pytest.mark.anyio
async def test_cancel_and_retry(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS", max_attempts=1)
  await repo.claim_job(job.id)
  failed = await repo.fail_job(job.id, "boom")
  assert failed is not None and failed.status == "failed"

  # Cancel leaves terminal jobs untouched.
  unchanged = await repo.cancel_job(job.id)
  assert unchanged is not None and unchanged.status == "failed"

  retried = await repo.retry_job(job.id)
  assert retried is not None
  assert retried.status == "pending"
  assert retried.attempts == 0
  assert retried.last_error is None
  assert retried.completed_at is None

  canceled = await repo.cancel_job(job.id)
  assert canceled is not None
  assert canceled.status == "canceled"
  assert canceled.completed_at is not None


@pytest.mark.anyio
async def test_retry_ignores_pending_jobs(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS")

  result = await repo.retry_job(job.id)

  assert result is not None
  assert result.status == "pending"


@pytest.mark.anyio
async def test_get_job_stats_defaults_every_status(repo: SqlJobsRepository) -> None:
  assert await repo.get_job_stats() == dict.fromkeys(JOB_STATUSES, 0)

  first = await repo.create_job("SYNC_STATUS")
  await repo.create_job("SYNC_STATUS")
  await repo.claim_job(first.id)

  stats = await repo.get_job_stats()
  assert stats["pending"] == 1
  assert stats["in_progress"] == 1
  assert stats["failed"] == 0
  assert set(stats) == set(JOB_STATUSES)


@pytest.mark.anyio
async def test_cluster_queries(repo: SqlJobsRepository) -> None:
  older = await repo.create_job("CREATE_CLUSTER", JobTargets(cluster_id="c1"))
  newer = await repo.create_job("SYNC_STATUS", JobTargets(cluster_id="c1"))
  await repo.create_job("SYNC_STATUS", JobTargets(cluster_id="c2"))

  jobs = await repo.find_by_cluster_id("c1")
  assert [job.id for job in jobs] == [newer.id, older.id]

  active = await repo.find_active_job_for_cluster("c1")
  assert active is not None and active.id == older.id

  await repo.claim_job(older.id)
  await repo.complete_job(older.id)
  await repo.cancel_job(newer.id)
  assert await repo.find_active_job_for_cluster("c1") is None


@pytest.mark.anyio
async def test_fail_job_keeps_job_canceled_while_running(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS", max_attempts=3)
  await repo.claim_job(job.id)
  await repo.cancel_job(job.id)

  after_fail = await repo.fail_job(job.id, "handler blew up")

  assert after_fail is not None
  assert after_fail.status == "canceled"
  assert after_fail.last_error is None
  assert await repo.find_pending_jobs() == []


@pytest.mark.anyio
async def test_complete_job_keeps_job_canceled_while_running(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS")
  await repo.claim_job(job.id)
  await repo.cancel_job(job.id)

  after_complete = await repo.complete_job(job.id, {"phase": "Running"})

  assert after_complete is not None
  assert after_complete.status == "canceled"
  assert after_complete.result is None


@pytest.mark.anyio
async def test_complete_and_fail_ignore_pending_jobs(repo: SqlJobsRepository) -> None:
  job = await repo.create_job("SYNC_STATUS")

  assert (await repo.complete_job(job.id)).status == "pending"  # type: ignore[union-attr]
  assert (await repo.fail_job(job.id, "boom")).status == "pending"  # type: ignore[union-attr]
