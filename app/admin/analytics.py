"""
Dashboard stats for the admin panel
"""

import asyncio

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import store_errors


async def _total_points(db: AsyncIOMotorDatabase) -> int:
    rows = await db.user_progress.aggregate([
        {"$group": {"_id": None, "total": {"$sum": "$points"}}}
    ]).to_list(length=1)
    return rows[0]["total"] if rows else 0


async def _top_courses(db: AsyncIOMotorDatabase, limit: int = 10) -> list:
    """Courses with the most progress records"""
    rows = await db.user_progress.aggregate([
        {"$group": {"_id": "$course_id", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
        {"$limit": limit}
    ]).to_list(length=limit)

    course_ids = [row["_id"] for row in rows]
    courses = await db.courses.find(
        {"course_id": {"$in": course_ids}},
        {"course_id": 1, "title_en": 1, "title_am": 1}
    ).to_list(length=None)
    by_id = {c["course_id"]: c for c in courses}

    return [
        {
            "course_id": row["_id"],
            "course_title_en": by_id.get(row["_id"], {}).get("title_en", "Unknown"),
            "course_title_am": by_id.get(row["_id"], {}).get("title_am", "አይታወቅም"),
            "enrollments": row["count"]
        }
        for row in rows
    ]


async def _recent_users(db: AsyncIOMotorDatabase, limit: int = 10) -> list:
    cursor = db.users.find(
        {"role": "user"},
        {"_id": 0, "name": 1, "email": 1, "role": 1, "created_at": 1}
    ).sort("created_at", -1).limit(limit)
    return await cursor.to_list(length=limit)


@store_errors
async def get_dashboard_stats(db: AsyncIOMotorDatabase) -> dict:
    (
        total_users,
        total_admins,
        total_courses,
        total_modules,
        total_quizzes,
        total_enrollments,
        completed_courses,
        total_points,
    ) = await asyncio.gather(
        db.users.count_documents({"role": "user"}),
        db.users.count_documents({"role": "admin"}),
        db.courses.count_documents({"deleting": {"$ne": True}}),
        db.modules.count_documents({}),
        db.quizzes.count_documents({}),
        db.user_progress.count_documents({}),
        db.user_progress.count_documents({"course_completed": True}),
        _total_points(db),
    )

    return {
        "stats": {
            "total_users": total_users,
            "total_admins": total_admins,
            "total_courses": total_courses,
            "total_modules": total_modules,
            "total_quizzes": total_quizzes,
            "total_enrollments": total_enrollments,
            "completed_courses": completed_courses,
            "total_points": total_points,
            "average_points_per_user": int(total_points / total_users + 0.5) if total_users > 0 else 0
        },
        "top_courses": await _top_courses(db),
        "recent_users": await _recent_users(db)
    }
