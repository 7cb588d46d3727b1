"""Reconciliation run by the app lifespan before serving requests."""
import asyncio

import pytest
from fastapi.testclient import TestClient

from app.core.database import MongoManager
from app.main import create_app

pytestmark = pytest.mark.integration


async def _seed_interrupted_state(db, seed_course):
    # Course deletion stopped after its modules were removed
    await seed_course("COURSE_DOOMED", ("MOD_D1", "MOD_D2"))
    await db.courses.update_one(
        {"course_id": "COURSE_DOOMED"},
        {"$set": {"deleting": True, "deleting_module_ids": ["MOD_D1", "MOD_D2"]}}
    )
    await db.modules.delete_many({"course_id": "COURSE_DOOMED"})
    await db.quizzes.insert_many([
        {"quiz_id": "QUIZ_D1", "module_id": "MOD_D1", "correct_answer": "a"},
        {"quiz_id": "QUIZ_D2", "module_id": "MOD_D2", "correct_answer": "b"},
    ])

    await seed_course("COURSE_KEPT", ("MOD_K1",))
    await db.quizzes.insert_one({"quiz_id": "QUIZ_K1", "module_id": "MOD_K1", "correct_answer": "c"})

    await db.user_progress.insert_many([
        {"progress_id": "PRG_DOOMED", "user_id": "USR_1", "course_id": "COURSE_DOOMED", "points": 40},
        {"progress_id": "PRG_ORPHAN", "user_id": "USR_1", "course_id": "COURSE_GONE", "points": 70},
        {"progress_id": "PRG_KEPT", "user_id": "USR_1", "course_id": "COURSE_KEPT", "points": 10},
    ])


async def _snapshot(db):
    return {
        "courses": await db.courses.distinct("course_id"),
        "quizzes": await db.quizzes.distinct("quiz_id"),
        "progress": await db.user_progress.distinct("progress_id"),
    }


def test_startup_finishes_deletions_and_prunes_orphans(mongo_client, mongo_db, seed_course):
    asyncio.run(_seed_interrupted_state(mongo_db, seed_course))

    app = create_app(MongoManager(client=mongo_client, db_name="elearning_test"))
    with TestClient(app) as client:
        board = client.get("/api/progress/leaderboard").json()["leaderboard"]

    assert [row["points"] for row in board] == [10]
    assert asyncio.run(_snapshot(mongo_db)) == {
        "courses": ["COURSE_KEPT"],
        "quizzes": ["QUIZ_K1"],
        "progress": ["PRG_KEPT"],
    }
