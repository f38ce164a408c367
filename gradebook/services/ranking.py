from typing import Dict, Iterable, List, Mapping, Optional

from gradebook.schemas.grading import GradeRecord, RankedStudent, StudentRef, TopStudent
from gradebook.services.aggregation import GradeTotals, aggregate, GROUP_BY_STUDENT

SCORE_TOLERANCE = 1e-9


def rank(students: Iterable[Mapping]) -> List[RankedStudent]:
    """
    Dense-rank students by overall score, best first.

    Equal scores share a rank and the next distinct score gets the following
    rank, so scores 90, 90, 80 rank as 1, 1, 2.

    Args:
        students: Items with ``student_id`` and ``overall_score`` keys or
            attributes (RankedStudent instances are accepted as well)

    Returns:
        RankedStudent list sorted by descending score
    """
    entries = []
    for student in students:
        if isinstance(student, Mapping):
            entries.append((student["student_id"], float(student["overall_score"])))
        else:
            entries.append((student.student_id, float(student.overall_score)))

    # sorted() is stable, so tied students keep their input order
    entries = sorted(entries, key=lambda entry: entry[1], reverse=True)

    ranked: List[RankedStudent] = []
    previous_score = None
    current_rank = 0
    for student_id, score in entries:
        if previous_score is None or abs(previous_score - score) > SCORE_TOLERANCE:
            current_rank += 1
            previous_score = score
        ranked.append(RankedStudent(student_id=student_id, overall_score=score, rank=current_rank))
    return ranked


def rank_class(records: Iterable[GradeRecord]) -> List[RankedStudent]:
    """Rank every student found in a class's records by pooled percentage."""
    scores = []
    for student_id, totals in aggregate(records, GROUP_BY_STUDENT).items():
        if totals.total_max > 0:
            scores.append({
                "student_id": student_id,
                "overall_score": 100 * totals.total_score / totals.total_max,
            })
    return rank(scores)


def ordinal(n: int) -> str:
    """Format a rank for display: 1st, 2nd, 3rd, 4th, 11th, 21st, ..."""
    if 10 <= n % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_rank_position(rank_value: Optional[int], class_size: Optional[int]) -> Optional[str]:
    if not rank_value or not class_size:
        return None
    return f"{rank_value}/{class_size}"


def top_students(
    totals: Mapping[int, GradeTotals],
    students: Mapping[int, StudentRef],
    limit: int = 5,
) -> List[TopStudent]:
    """
    Best students by rounded overall average.

    Args:
        totals: Per-student totals, as produced by ``aggregate(..., "student")``
        students: Student lookup by id
        limit: Number of students to return
    """
    averaged = []
    for student_id, student_totals in totals.items():
        student = students.get(student_id)
        averaged.append(TopStudent(
            student_id=student_id,
            name=student.name if student else "Unknown",
            class_name=(student.class_name if student else None) or "N/A",
            average=student_totals.percentage or 0,
        ))
    averaged.sort(key=lambda student: student.average, reverse=True)
    return averaged[:limit]
