"""
Points, levels, badges and quiz grading

Pure functions; the tracker applies them against the store.
"""

from typing import Dict, Iterable, List

POINTS_PER_CORRECT_ANSWER = 10
POINTS_PER_LEVEL = 100

# (threshold, badge) in ascending order
BADGE_THRESHOLDS = [
    (500, "Ge'ez Scholar"),
    (1000, "Master Linguist"),
]


def compute_level(points: int) -> int:
    """Level 1 at 0 points, +1 every POINTS_PER_LEVEL"""
    return max(points, 0) // POINTS_PER_LEVEL + 1


def evaluate_badges(points: int, existing: Iterable[str] = ()) -> List[str]:
    """Badges newly earned at `points` that are not already held"""
    held = set(existing)
    return [
        badge for threshold, badge in BADGE_THRESHOLDS
        if points >= threshold and badge not in held
    ]


def grade_quiz_answers(quizzes: List[dict], answers: Dict[str, str]) -> dict:
    """
    Grade one module's quiz set.

    An answer is correct when it equals the stored correct_answer exactly.
    all_correct requires every quiz answered correctly and at least one quiz.
    """
    correct = sum(
        1 for quiz in quizzes
        if answers.get(quiz["quiz_id"]) is not None
        and str(answers[quiz["quiz_id"]]) == str(quiz["correct_answer"])
    )
    total = len(quizzes)

    return {
        "correct": correct,
        "total": total,
        "points_earned": correct * POINTS_PER_CORRECT_ANSWER,
        "all_correct": total > 0 and correct == total,
    }
