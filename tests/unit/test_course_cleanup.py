"""Cascading course deletion and the reconciliation jobs."""
import pytest

from app.core.errors import NotFoundError
from app.courses.database import (
    cascade_delete_course, delete_module, get_course, prune_orphaned_progress,
    prune_orphaned_quizzes, resume_pending_deletions
)

pytestmark = pytest.mark.unit


async def _course_with_learners(db, tracker, seed_course, course_id="COURSE_A"):
    await seed_course(course_id, (f"{course_id}_M1", f"{course_id}_M2"))
    await db.quizzes.insert_many([
        {"quiz_id": f"{course_id}_Q1", "module_id": f"{course_id}_M1", "correct_answer": "a"},
        {"quiz_id": f"{course_id}_Q2", "module_id": f"{course_id}_M2", "correct_answer": "b"},
    ])
    await tracker.enroll("USR_1", course_id)
    await tracker.enroll("USR_2", course_id)


@pytest.mark.asyncio
async def test_cascade_removes_everything_for_the_course(mongo_db, tracker, seed_course):
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_A")
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_B")

    summary = await cascade_delete_course(mongo_db, "COURSE_A")

    assert summary == {
        "course_id": "COURSE_A",
        "quizzes_deleted": 2,
        "modules_deleted": 2,
        "progress_deleted": 2,
    }
    assert await mongo_db.courses.count_documents({"course_id": "COURSE_A"}) == 0
    assert await mongo_db.modules.count_documents({"course_id": "COURSE_A"}) == 0
    assert await mongo_db.quizzes.count_documents({"module_id": {"$in": ["COURSE_A_M1", "COURSE_A_M2"]}}) == 0
    assert await mongo_db.user_progress.count_documents({"course_id": "COURSE_A"}) == 0

    # Other course untouched
    assert await mongo_db.modules.count_documents({"course_id": "COURSE_B"}) == 2
    assert await mongo_db.user_progress.count_documents({"course_id": "COURSE_B"}) == 2


@pytest.mark.asyncio
async def test_cascade_unknown_course(mongo_db):
    with pytest.raises(NotFoundError):
        await cascade_delete_course(mongo_db, "COURSE_MISSING")


@pytest.mark.asyncio
async def test_interrupted_deletion_is_hidden_then_resumed(mongo_db, tracker, seed_course):
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_A")

    # Simulate a run that stopped right after modules were removed
    await mongo_db.courses.update_one({"course_id": "COURSE_A"}, {"$set": {"deleting": True}})
    await mongo_db.modules.delete_many({"course_id": "COURSE_A"})

    assert await get_course(mongo_db, "COURSE_A") is None
    assert await tracker.list_progress("USR_1") == []

    resumed = await resume_pending_deletions(mongo_db)

    assert resumed == 1
    assert await mongo_db.courses.count_documents({}) == 0
    assert await mongo_db.user_progress.count_documents({}) == 0
    assert await mongo_db.quizzes.count_documents({}) == 0
    assert await resume_pending_deletions(mongo_db) == 0


@pytest.mark.asyncio
async def test_resumed_deletion_keeps_first_recorded_module_ids(mongo_db, tracker, seed_course):
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_A")
    # Marker as the first run writes it, then modules gone before the quizzes
    await mongo_db.courses.update_one(
        {"course_id": "COURSE_A"},
        {"$set": {"deleting": True, "deleting_module_ids": ["COURSE_A_M1", "COURSE_A_M2"]}}
    )
    await mongo_db.modules.delete_many({"course_id": "COURSE_A"})

    summary = await cascade_delete_course(mongo_db, "COURSE_A")

    assert summary["quizzes_deleted"] == 2
    assert summary["modules_deleted"] == 0
    assert summary["progress_deleted"] == 2


@pytest.mark.asyncio
async def test_delete_module_removes_its_quizzes(mongo_db, tracker, seed_course):
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_A")

    summary = await delete_module(mongo_db, "COURSE_A_M1")

    assert summary == {"module_id": "COURSE_A_M1", "quizzes_deleted": 1}
    assert await mongo_db.modules.count_documents({"module_id": "COURSE_A_M1"}) == 0
    assert await mongo_db.quizzes.count_documents({"module_id": "COURSE_A_M1"}) == 0
    assert await mongo_db.quizzes.count_documents({"module_id": "COURSE_A_M2"}) == 1


@pytest.mark.asyncio
async def test_delete_unknown_module_leaves_quizzes(mongo_db):
    await mongo_db.quizzes.insert_one({"quiz_id": "QUIZ_1", "module_id": "MOD_GONE", "correct_answer": "a"})

    with pytest.raises(NotFoundError):
        await delete_module(mongo_db, "MOD_GONE")
    assert await mongo_db.quizzes.count_documents({}) == 1


@pytest.mark.asyncio
async def test_prune_orphaned_quizzes(mongo_db, tracker, seed_course):
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_A")
    # Module removed before its quizzes were
    await mongo_db.modules.delete_one({"module_id": "COURSE_A_M1"})

    assert await prune_orphaned_quizzes(mongo_db) == 1
    assert await prune_orphaned_quizzes(mongo_db) == 0
    assert [q["quiz_id"] for q in await mongo_db.quizzes.find({}).to_list(length=None)] == ["COURSE_A_Q2"]


@pytest.mark.asyncio
async def test_prune_orphaned_progress_is_idempotent(mongo_db, tracker, seed_course):
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_A")
    await _course_with_learners(mongo_db, tracker, seed_course, "COURSE_B")
    await mongo_db.courses.delete_one({"course_id": "COURSE_B"})

    assert await prune_orphaned_progress(mongo_db) == 2
    assert await prune_orphaned_progress(mongo_db) == 0
    assert await mongo_db.user_progress.count_documents({"course_id": "COURSE_A"}) == 2


@pytest.mark.asyncio
async def test_prune_with_no_progress(mongo_db):
    assert await prune_orphaned_progress(mongo_db) == 0
