from typing import Any, Optional


class InvalidRecord(Exception):
    """
    Raised when a grade record breaks the score invariants
    (``0 <= score <= max_score`` and ``max_score > 0``).
    """

    def __init__(self, message: str, student_id: Optional[Any] = None, score: Optional[float] = None,
                 max_score: Optional[float] = None):
        super().__init__(message)
        self.student_id = student_id
        self.score = score
        self.max_score = max_score


class LockedGradeError(Exception):
    """Raised when grade entry tries to overwrite a locked grade."""

    def __init__(self, student_id: int, class_subject_id: int, assessment_type_id: int, period: str):
        super().__init__(
            f"Grade for student {student_id} ({period}, assessment type {assessment_type_id}) is locked"
        )
        self.student_id = student_id
        self.class_subject_id = class_subject_id
        self.assessment_type_id = assessment_type_id
        self.period = period
