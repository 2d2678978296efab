"""Quiz grading service.

Multiple-choice only: an answer is correct when its selected option index
matches the question's ``correct_option_index`` exactly.

Scoring rules:
  1. Answers are looked up by question id, then by positional index ("0", "1", …)
  2. Missing / non-integer answers count as incorrect, never as an error
  3. Without a whole-quiz ``time_spent`` the per-answer times are summed
  4. Every correct answer earns ``total_points // total_questions``, so point
     totals track the percentage regardless of per-question weights
"""

from __future__ import annotations

import logging
import math

from edugame.core.exceptions import InvalidQuizError
from edugame.schemas.attempt import AnswerResult, AnswerSubmission, AttemptSubmission, GradedAttempt
from edugame.schemas.quiz import QuizDefinition

logger = logging.getLogger(__name__)

PASSING_PERCENTAGE = 70

# ── Validation ────────────────────────────────────────────────────────────────


def validate_quiz(quiz: QuizDefinition) -> None:
    """Reject quizzes that cannot be graded."""
    if not quiz.questions:
        raise InvalidQuizError("Quiz has no questions", details={"quiz_id": quiz.id})

    for index, question in enumerate(quiz.questions):
        if len(question.options) < 2:
            raise InvalidQuizError(
                "Question has fewer than two options",
                details={"quiz_id": quiz.id, "question": question.id or index},
            )
        correct = question.correct_option_index
        if (
            correct is None
            or isinstance(correct, bool)
            or not 0 <= correct < min(len(question.options), 4)
        ):
            raise InvalidQuizError(
                "Question has no valid correct option",
                details={"quiz_id": quiz.id, "question": question.id or index},
            )


# ── Helpers ───────────────────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    """Round halves upward; 12.5 gives 13, where round() would give 12."""
    return int(math.floor(value + 0.5))


def _lookup(answers: dict[str, AnswerSubmission], question_id: str, index: int) -> AnswerSubmission | None:
    found = answers.get(question_id)
    if found is None:
        found = answers.get(str(index))
    return found


def _is_selected(selected: object, correct: int | None) -> bool:
    # bool is an int subclass; True must not read as option 1
    if isinstance(selected, bool) or not isinstance(selected, int):
        return False
    return selected == correct


# ── Main grading function ────────────────────────────────────────────────────


def grade(quiz: QuizDefinition, submission: AttemptSubmission) -> GradedAttempt:
    """Grade a submission against a quiz.

    Pure: identical inputs always give an identical ``GradedAttempt``.
    Raises ``InvalidQuizError`` before any scoring when the quiz is malformed.
    """
    validate_quiz(quiz)

    total = len(quiz.questions)
    quiz_total_points = quiz.total_points or 0
    per_question = quiz_total_points // total

    by_key = {a.question_id: a for a in submission.answers}

    correctness: list[bool] = []
    results: list[AnswerResult] = []
    for index, question in enumerate(quiz.questions):
        answer = _lookup(by_key, question.id, index)
        selected = answer.selected_answer if answer is not None else None
        is_correct = _is_selected(selected, question.correct_option_index)
        correctness.append(is_correct)
        results.append(
            AnswerResult(
                question_id=question.id,
                selected_answer=selected,
                is_correct=is_correct,
                time_spent=answer.time_spent if answer is not None else 0.0,
                points=per_question if is_correct else 0,
            )
        )

    time_spent = submission.time_spent
    if time_spent is None:
        time_spent = sum(a.time_spent for a in submission.answers)

    correct_count = sum(correctness)
    percentage = round_half_up(correct_count / total * 100)

    logger.debug(
        "Graded quiz %s: %d/%d correct (%d%%)",
        quiz.id, correct_count, total, percentage,
    )

    return GradedAttempt(
        correct_count=correct_count,
        total_questions=total,
        percentage=percentage,
        raw_points=correct_count * per_question,
        correctness=correctness,
        answers=results,
        time_spent_seconds=time_spent,
        time_limit_minutes=quiz.time_limit_minutes,
        category=quiz.category,
        difficulty=quiz.difficulty,
        quiz_total_points=quiz_total_points,
        quiz_id=quiz.id,
    )


def performance_label(percentage: int) -> str:
    if percentage >= 90:
        return "excellent"
    if percentage >= 80:
        return "good"
    if percentage >= 70:
        return "satisfactory"
    return "needs_improvement"


def is_passing(percentage: int) -> bool:
    return percentage >= PASSING_PERCENTAGE
