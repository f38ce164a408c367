"""
Report card assembly for a single student.

Period reports (p1..p6, exam_s1, exam_s2) round to whole percentages.
Semester and yearly reports keep one truncated decimal and only produce
averages once every period of the semester has complete grades.
"""
from typing import Dict, Iterable, List, Optional, Sequence

from gradebook.schemas.grading import (
    AssessmentLine, GradeRecord, Period, ReportSubjectLine, SemesterPeriodCell,
    SemesterReport, SemesterSubjectLine, StoredRanking, StudentReport, expand_period,
)
from gradebook.services.aggregation import GradeTotals, overall_average, subject_aggregates, truncate_one_decimal
from gradebook.services.ranking import format_rank_position, ordinal, rank_class

# A grade below this percentage is shown as incomplete ("I") on report cards
INCOMPLETE_PERCENTAGE = 60

GRADE_BOUNDARIES = [
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
    (50, "E"),
]


def grade_letter(percentage: Optional[float]) -> Optional[str]:
    """Map a percentage to a report card letter, A down to F."""
    if percentage is None:
        return None
    for boundary, letter in GRADE_BOUNDARIES:
        if percentage >= boundary:
            return letter
    return "F"


def is_incomplete(record: GradeRecord) -> bool:
    return 100 * record.score / record.max_score < INCOMPLETE_PERCENTAGE


def _resolve_rank(
    student_id: int,
    stored_ranking: Optional[StoredRanking],
    class_records: Optional[Sequence[GradeRecord]],
) -> Optional[int]:
    if stored_ranking is not None and stored_ranking.class_rank is not None:
        return stored_ranking.class_rank
    if class_records:
        for ranked in rank_class(class_records):
            if ranked.student_id == student_id:
                return ranked.rank
    return None


def assemble_report(
    student_id: int,
    period: Period,
    period_records: Iterable[GradeRecord],
    stored_ranking: Optional[StoredRanking] = None,
    class_records: Optional[Sequence[GradeRecord]] = None,
    class_size: Optional[int] = None,
) -> StudentReport:
    """
    Build a single-period report card.

    Args:
        student_id: Student the report is for
        period: Reporting period
        period_records: Grade records of the period; records of other
            students are ignored
        stored_ranking: Precomputed total and class rank, used when present
        class_records: All records of the student's class for the period,
            used to compute the rank when nothing is stored
        class_size: Number of students in the class, for "rank/size" display

    Returns:
        StudentReport with subject lines, overall average and rank
    """
    own_records = [record for record in period_records if record.student_id == student_id]

    lines = []
    for aggregate_ in subject_aggregates(own_records):
        subject_records = [r for r in own_records if r.subject_offering_id == aggregate_.subject_offering_id]
        assessments = [
            AssessmentLine(
                assessment_type_id=r.assessment_type_id,
                name=r.assessment_name or "Assessment",
                score=r.score,
                max_score=r.max_score,
                incomplete=is_incomplete(r),
            )
            for r in subject_records
        ]
        lines.append(ReportSubjectLine(
            **aggregate_.model_dump(),
            grade=grade_letter(aggregate_.percentage),
            has_incomplete=any(line.incomplete for line in assessments),
            assessments=assessments,
        ))

    average = overall_average(lines)
    rank_value = _resolve_rank(student_id, stored_ranking, class_records)

    return StudentReport(
        student_id=student_id,
        period=period,
        subject_aggregates=lines,
        overall_average=average,
        overall_grade=grade_letter(average),
        total_score=stored_ranking.total_score if stored_ranking else None,
        rank=rank_value,
        rank_label=ordinal(rank_value) if rank_value else None,
        class_size=class_size,
        rank_position=format_rank_position(rank_value, class_size),
        has_incomplete=any(line.has_incomplete for line in lines),
    )


def assemble_semester_report(
    student_id: int,
    period: Period,
    records: Iterable[GradeRecord],
    stored_ranking: Optional[StoredRanking] = None,
    class_size: Optional[int] = None,
) -> SemesterReport:
    """
    Build a semester1, semester2 or yearly report card.

    A subject gets a semester average only when it has grades in every
    period of the semester and none of them is incomplete. The overall
    average is the truncated mean of the subject averages and is only
    given when every subject has one.
    """
    required = expand_period(period)
    own_records = [
        record for record in records
        if record.student_id == student_id and record.period in required
    ]

    subjects: Dict[int, dict] = {}
    for record in own_records:
        subject = subjects.setdefault(record.subject_offering_id, {
            "name": record.subject_name or "Unknown",
            "code": record.subject_code or "N/A",
            "totals": {},
            "incomplete": {},
        })
        subject["totals"].setdefault(record.period, GradeTotals()).add(record.score, record.max_score)
        subject["incomplete"][record.period] = subject["incomplete"].get(record.period, False) or is_incomplete(record)

    lines: List[SemesterSubjectLine] = []
    for offering_id, subject in subjects.items():
        cells = {}
        semester = GradeTotals()
        for stored_period, totals in subject["totals"].items():
            cells[stored_period] = SemesterPeriodCell(
                score=totals.total_score,
                max_score=totals.total_max,
                percentage=truncate_one_decimal(100 * totals.total_score / totals.total_max)
                if totals.total_max > 0 else None,
                incomplete=subject["incomplete"][stored_period],
            )
            semester.add(totals.total_score, totals.total_max)

        has_incomplete = any(subject["incomplete"].values())
        complete = all(p in subject["totals"] for p in required) and not has_incomplete
        semester_average = None
        if complete and semester.total_max > 0:
            semester_average = truncate_one_decimal(100 * semester.total_score / semester.total_max)

        lines.append(SemesterSubjectLine(
            subject_offering_id=offering_id,
            subject_name=subject["name"],
            subject_code=subject["code"],
            periods=cells,
            semester_average=semester_average,
            grade=grade_letter(semester_average),
            has_incomplete=has_incomplete,
        ))

    has_incomplete = any(line.has_incomplete for line in lines)
    overall = None
    if lines and not has_incomplete and all(line.semester_average is not None for line in lines):
        overall = truncate_one_decimal(sum(line.semester_average for line in lines) / len(lines))

    rank_value = stored_ranking.class_rank if stored_ranking else None
    return SemesterReport(
        student_id=student_id,
        period=period,
        subjects=lines,
        overall_average=overall,
        rank=rank_value,
        rank_label=ordinal(rank_value) if rank_value else None,
        class_size=class_size,
        rank_position=format_rank_position(rank_value, class_size),
        has_incomplete=has_incomplete,
    )
