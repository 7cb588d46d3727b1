"""
Shared fixtures: an in-memory MongoDB (mongomock-motor), a tracker bound to
it, seeding helpers, and a TestClient over an app that uses the same store.
"""
import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.auth.auth_utils import create_access_token
from app.core.database import MongoManager
from app.progress.tracker import ProgressTracker


# ----- Store -----
@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture
def mongo_db(mongo_client):
    return mongo_client["elearning_test"]


@pytest.fixture
def tracker(mongo_db):
    return ProgressTracker(mongo_db)


# ----- Seeding -----
async def insert_course(db, course_id, module_ids=(), title_en="Ge'ez Basics", title_am="የግዕዝ መሰረታዊ"):
    await db.courses.insert_one({
        "course_id": course_id,
        "title_en": title_en,
        "title_am": title_am,
        "description_en": "Intro",
        "description_am": "መግቢያ",
        "created_by": "USR_ADMIN",
    })
    for order, module_id in enumerate(module_ids):
        await db.modules.insert_one({
            "module_id": module_id,
            "course_id": course_id,
            "title_en": module_id,
            "title_am": module_id,
            "content_en": "text",
            "content_am": "ጽሑፍ",
            "order": order,
        })


@pytest.fixture
def seed_course(mongo_db):
    async def _seed(course_id="COURSE_A", module_ids=("MOD_A", "MOD_B"), **kwargs):
        await insert_course(mongo_db, course_id, module_ids, **kwargs)
        return course_id
    return _seed


# ----- HTTP -----
@pytest.fixture
def api_client(mongo_client):
    """TestClient whose app runs its lifespan against the in-memory store."""
    from app.main import create_app
    app = create_app(MongoManager(client=mongo_client, db_name="elearning_test"))
    with TestClient(app) as client:
        yield client


def auth_headers(user_id="USR_LEARNER", role="user"):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def make_headers():
    return auth_headers


@pytest.fixture
def admin_headers():
    return auth_headers("USR_ADMIN", "admin")


@pytest.fixture
def user_headers():
    return auth_headers("USR_LEARNER", "user")
