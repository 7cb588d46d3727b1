import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.admin.router import router as admin_router
from app.auth.auth_router import router as auth_router
from app.core import config
from app.core.database import MongoManager, create_indexes
from app.core.errors import install_error_handlers
from app.core.logger import setup_logging
from app.courses.course_router import router as course_router
from app.courses.database import prune_orphaned_progress, prune_orphaned_quizzes, resume_pending_deletions
from app.progress.progress_router import router as progress_router
from app.progress.tracker import ProgressTracker

logger = logging.getLogger(__name__)


def create_app(mongo: Optional[MongoManager] = None) -> FastAPI:
    setup_logging(config.LOG_LEVEL)
    mongo = mongo or MongoManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = await mongo.connect()
        await create_indexes(db)

        resumed = await resume_pending_deletions(db)
        pruned = await prune_orphaned_progress(db)
        quizzes_pruned = await prune_orphaned_quizzes(db)
        if resumed or pruned or quizzes_pruned:
            logger.info(
                "Startup reconciliation: %d deletions resumed, %d progress and %d quiz orphans pruned",
                resumed, pruned, quizzes_pruned
            )

        app.state.tracker = ProgressTracker(db)
        logger.info("E-learning service started")
        try:
            yield
        finally:
            await mongo.close()

    app = FastAPI(title="Bilingual E-Learning API", lifespan=lifespan)
    app.state.mongo = mongo

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    install_error_handlers(app)

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(course_router, prefix="/api")
    app.include_router(progress_router, prefix="/api/progress")
    app.include_router(admin_router, prefix="/api/admin")
    # =============================================================

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
