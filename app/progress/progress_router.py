from fastapi import APIRouter, Depends, Request

from app.auth.auth_utils import UserContext, get_current_user
from app.progress.models import EnrollRequest, LeaderboardResponse, ProgressUpdateRequest
from app.progress.tracker import ProgressTracker

router = APIRouter(tags=["Progress"])


def get_tracker(request: Request) -> ProgressTracker:
    """Tracker built once at startup"""
    return request.app.state.tracker


@router.post("/enroll")
async def enroll_endpoint(
    body: EnrollRequest,
    user: UserContext = Depends(get_current_user),
    tracker: ProgressTracker = Depends(get_tracker)
):
    progress = await tracker.enroll(user.user_id, body.course_id)
    return {"message": "Enrolled", "progress": progress}


@router.post("/update")
async def update_progress(
    body: ProgressUpdateRequest,
    user: UserContext = Depends(get_current_user),
    tracker: ProgressTracker = Depends(get_tracker)
):
    """
    Record a module quiz outcome.
    points_earned is credited only when mark_module_complete is true and the
    module was not completed before; already_completed tells the client so.
    """
    result = await tracker.record_module_quiz_result(
        user.user_id,
        body.course_id,
        body.module_id,
        body.points_earned,
        body.mark_module_complete
    )
    return {
        "message": "Progress updated successfully",
        "progress": result.progress,
        "course_completed": result.course_completed,
        "already_completed": result.already_completed
    }


@router.get("/me")
async def my_progress(
    user: UserContext = Depends(get_current_user),
    tracker: ProgressTracker = Depends(get_tracker)
):
    return {"progress": await tracker.list_progress(user.user_id)}


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(tracker: ProgressTracker = Depends(get_tracker)):
    return {"leaderboard": await tracker.leaderboard()}
