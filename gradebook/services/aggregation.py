import math
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Optional

from gradebook.schemas.grading import GradeRecord, Period, StudentPeriodSummary, SubjectAggregate

GROUP_BY_STUDENT = "student"
GROUP_BY_STUDENT_SUBJECT = "student+subject"


@dataclass
class GradeTotals:
    total_score: float = 0.0
    total_max: float = 0.0

    def add(self, score: float, max_score: float) -> None:
        self.total_score += score
        self.total_max += max_score

    @property
    def percentage(self) -> Optional[int]:
        return percentage(self.total_score, self.total_max)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def truncate_one_decimal(value: float) -> float:
    """Drop everything past the first decimal (85.59 -> 85.5)."""
    return math.floor(value * 10) / 10


def percentage(total_score: float, total_max: float) -> Optional[int]:
    """
    Whole-number percentage of total_score over total_max.

    Returns None ("no data") instead of dividing by zero.
    """
    if total_max <= 0:
        return None
    return round_half_up(100 * total_score / total_max)


def aggregate(records: Iterable[GradeRecord], group_by: str = GROUP_BY_STUDENT) -> Dict[Hashable, GradeTotals]:
    """
    Sum scores and maximum scores of grade records under a grouping key.

    Args:
        records: Grade records, already filtered to one period and scope
        group_by: "student" keys by student_id, "student+subject" keys by
            (student_id, subject_offering_id)

    Returns:
        Mapping of key to accumulated totals, in first-seen order
    """
    if group_by == GROUP_BY_STUDENT:
        key_of = lambda record: record.student_id
    elif group_by == GROUP_BY_STUDENT_SUBJECT:
        key_of = lambda record: (record.student_id, record.subject_offering_id)
    else:
        raise ValueError(f"Unknown grouping: {group_by!r}")

    totals: Dict[Hashable, GradeTotals] = {}
    for record in records:
        totals.setdefault(key_of(record), GradeTotals()).add(record.score, record.max_score)
    return totals


def pooled_totals(records: Iterable[GradeRecord]) -> GradeTotals:
    totals = GradeTotals()
    for record in records:
        totals.add(record.score, record.max_score)
    return totals


def pooled_percentage(records: Iterable[GradeRecord]) -> Optional[float]:
    """Unrounded percentage over all records taken as one pool."""
    totals = pooled_totals(records)
    if totals.total_max <= 0:
        return None
    return 100 * totals.total_score / totals.total_max


def subject_aggregates(records: Iterable[GradeRecord]) -> List[SubjectAggregate]:
    """
    One SubjectAggregate per subject offering found in the records.

    The records are expected to belong to a single student.
    """
    records = list(records)
    totals = aggregate(records, GROUP_BY_STUDENT_SUBJECT)
    labels = {}
    for record in records:
        labels.setdefault(record.subject_offering_id, (record.subject_name, record.subject_code))

    aggregates = []
    for (_, offering_id), subject_totals in totals.items():
        name, code = labels[offering_id]
        aggregates.append(SubjectAggregate(
            subject_offering_id=offering_id,
            subject_name=name or "Unknown",
            subject_code=code or "N/A",
            total_score=subject_totals.total_score,
            total_max=subject_totals.total_max,
            percentage=subject_totals.percentage,
        ))
    return aggregates


def overall_average(aggregates: Iterable[SubjectAggregate]) -> Optional[int]:
    totals = GradeTotals()
    for subject in aggregates:
        totals.add(subject.total_score, subject.total_max)
    return totals.percentage


def summarize_student(student_id: int, period: Period, records: Iterable[GradeRecord]) -> StudentPeriodSummary:
    own_records = [record for record in records if record.student_id == student_id]
    aggregates = subject_aggregates(own_records)
    return StudentPeriodSummary(
        student_id=student_id,
        period=period,
        subject_aggregates=aggregates,
        overall_average=overall_average(aggregates),
    )


def subject_aggregates_by_student(records: Iterable[GradeRecord]) -> Dict[int, List[SubjectAggregate]]:
    """Group records per student and aggregate each student's subjects."""
    by_student: Dict[int, List[GradeRecord]] = {}
    for record in records:
        by_student.setdefault(record.student_id, []).append(record)
    return {student_id: subject_aggregates(own) for student_id, own in by_student.items()}
