import pytest

from gradebook.models import StudentGrade
from gradebook.schemas.grading import Period, StoredRanking, StudentRef


@pytest.fixture
def school(repo, grade_record):
    repo.classes = {1: "JHS 1", 2: "JHS 2"}
    repo.students = [
        StudentRef(id=1, name="Ama Mensah", class_id=1, class_name="JHS 1"),
        StudentRef(id=2, name="Kofi Boateng", class_id=1, class_name="JHS 1"),
        StudentRef(id=3, name="Esi Owusu", class_id=2, class_name="JHS 2"),
        StudentRef(id=4, name="Yaw Asante", class_id=2, class_name="JHS 2"),
    ]
    repo.teacher_classes = {10: [2], 11: []}
    repo.records = [
        # Ama passes everything
        grade_record(1, 100, 90, period=Period.p1, subject_name="Mathematics", subject_code="MAT"),
        grade_record(1, 101, 80, period=Period.p1, subject_name="English", subject_code="ENG"),
        # Kofi fails three of four subjects
        grade_record(2, 100, 40, period=Period.p1),
        grade_record(2, 101, 45, period=Period.p1),
        grade_record(2, 102, 48, period=Period.p1),
        grade_record(2, 103, 60, period=Period.p1),
        # Esi is in the other class
        grade_record(3, 200, 70, period=Period.p1),
        grade_record(3, 200, 60, period=Period.p2),
        # Yaw has no grades
    ]
    return repo


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_pass_fail_for_the_whole_school(client, school):
    response = client.get("/api/analytics/pass-fail", params={"period": "p1"})

    assert response.status_code == 200
    assert response.json() == {
        "total_students": 4,
        "passing_students": 2,
        "failing_students": 1,
        "pass_rate": 50,
        "fail_rate": 25,
    }


def test_pass_fail_scoped_to_a_teacher(client, school):
    body = client.get("/api/analytics/pass-fail", params={"period": "p1", "teacher_id": 10}).json()

    assert body["total_students"] == 2
    assert body["passing_students"] == 1
    assert body["pass_rate"] == 50


def test_teacher_without_classes_gets_zeroes(client, school):
    body = client.get("/api/analytics/pass-fail", params={"period": "p1", "teacher_id": 11}).json()

    assert body == {
        "total_students": 0,
        "passing_students": 0,
        "failing_students": 0,
        "pass_rate": 0,
        "fail_rate": 0,
    }
    assert client.get("/api/analytics/top-students", params={"period": "p1", "teacher_id": 11}).json() == []


def test_unknown_period_is_rejected(client, school):
    assert client.get("/api/analytics/pass-fail", params={"period": "p9"}).status_code == 422


def test_top_students(client, school):
    body = client.get("/api/analytics/top-students", params={"period": "p1", "limit": 2}).json()

    assert [(s["name"], s["average"]) for s in body] == [("Ama Mensah", 85), ("Esi Owusu", 70)]
    assert body[0]["class_name"] == "JHS 1"


def test_at_risk_students(client, school):
    body = client.get("/api/analytics/at-risk", params={"period": "p1"}).json()

    assert body == [{
        "student_id": 2,
        "failing_subject_count": 3,
        "name": "Kofi Boateng",
        "class_name": "JHS 1",
    }]


def test_class_performance(client, school):
    body = client.get("/api/analytics/class-performance", params={"period": "p1"}).json()

    assert [(c["class_name"], c["average"]) for c in body] == [("JHS 2", 70.0), ("JHS 1", 60.5)]


def test_trend(client, school):
    body = client.get("/api/analytics/trend", params={"class_id": 2}).json()

    assert body == [
        {"period_label": "Period 1", "average_percentage": 70.0},
        {"period_label": "Period 2", "average_percentage": 60.0},
    ]


def test_trend_for_class_outside_teacher_scope_is_empty(client, school):
    assert client.get("/api/analytics/trend", params={"teacher_id": 10, "class_id": 1}).json() == []


def test_class_ranking(client, school):
    body = client.get("/api/classes/1/ranking", params={"period": "p1"}).json()

    assert [(r["student_id"], r["rank"]) for r in body] == [(1, 1), (2, 2)]


def test_student_report_uses_stored_rank(client, school):
    school.stored_rankings[(1, Period.p1)] = StoredRanking(total_score=170, class_rank=1)

    response = client.get("/api/reports/students/1", params={"period": "p1"})

    assert response.status_code == 200
    body = response.json()
    assert body["overall_average"] == 85
    assert body["rank_label"] == "1st"
    assert body["rank_position"] == "1/2"
    assert [s["subject_code"] for s in body["subject_aggregates"]] == ["MAT", "ENG"]


def test_student_report_ranks_class_when_nothing_is_stored(client, school):
    body = client.get("/api/reports/students/2", params={"period": "p1"}).json()

    assert body["rank"] == 2
    assert body["has_incomplete"] is True


def test_student_report_without_grades(client, school):
    body = client.get("/api/reports/students/4", params={"period": "p1"}).json()

    assert body["overall_average"] is None
    assert body["subject_aggregates"] == []


def test_semester_report(client, school):
    school.yearly_rankings[(3, Period.semester1)] = StoredRanking(total_score=65.0, class_rank=2)

    body = client.get("/api/reports/students/3", params={"period": "semester1"}).json()

    assert body["period"] == "semester1"
    assert set(body["subjects"][0]["periods"]) == {"p1", "p2"}
    assert body["subjects"][0]["semester_average"] is None
    assert body["rank_position"] == "2/2"


def test_missing_student_report(client, school):
    assert client.get("/api/reports/students/99", params={"period": "p1"}).status_code == 404


def test_save_and_list_grades(client, repo):
    payload = [
        {"id": 55, "student_id": 1, "class_subject_id": 7, "assessment_type_id": 1,
         "period": "p1", "score": 18, "max_score": 20},
        {"student_id": 2, "class_subject_id": 7, "assessment_type_id": 1,
         "period": "p1", "score": 12.5, "max_score": 20},
    ]

    response = client.put("/api/grades", json=payload)

    assert response.status_code == 200
    assert [g["score"] for g in response.json()] == [18, 12.5]
    listed = client.get("/api/grades", params={"class_subject_id": 7, "period": "p1"}).json()
    assert len(listed) == 2

    payload[0]["score"] = 19
    client.put("/api/grades", json=payload[:1])
    assert len(repo.grades) == 2
    assert repo.grades[0].score == 19


def test_locked_grade_cannot_be_overwritten(client, repo):
    repo.grades.append(StudentGrade(
        id=1, student_id=1, class_subject_id=7, assessment_type_id=1,
        period="p1", score=10, max_score=20, is_locked=True,
    ))

    response = client.put("/api/grades", json=[{
        "student_id": 1, "class_subject_id": 7, "assessment_type_id": 1,
        "period": "p1", "score": 20, "max_score": 20,
    }])

    assert response.status_code == 409
    assert repo.grades[0].score == 10


@pytest.mark.parametrize("changes", [
    {"score": 21},
    {"score": -1},
    {"max_score": 0},
    {"period": "semester1"},
])
def test_invalid_grade_entries_are_rejected(client, changes):
    entry = {"student_id": 1, "class_subject_id": 7, "assessment_type_id": 1,
             "period": "p1", "score": 10, "max_score": 20}
    entry.update(changes)

    assert client.put("/api/grades", json=[entry]).status_code == 422


def test_empty_grade_batch(client):
    assert client.put("/api/grades", json=[]).status_code == 400


def test_dashboard_stats(client, school):
    school.current_year = "2025/2026"

    assert client.get("/api/dashboard/stats").json() == {
        "total_students": 4,
        "total_classes": 2,
        "current_year": "2025/2026",
    }


def test_invalid_stored_record_is_reported(client, school, grade_record, monkeypatch, caplog):
    async def records_with_bad_score(*args, **kwargs):
        return [grade_record(1, 100, 120, 100)]

    monkeypatch.setattr(school, "fetch_grade_records", records_with_bad_score)

    response = client.get("/api/analytics/pass-fail", params={"period": "p1"})

    assert response.status_code == 422
    assert response.json() == {"detail": "score 120.0 is outside 0..100.0"}
    assert response.headers["X-Request-ID"] in caplog.text


def test_rejected_grade_batch_is_logged_with_request_id(client, repo, caplog):
    repo.grades.append(StudentGrade(
        id=1, student_id=1, class_subject_id=7, assessment_type_id=1,
        period="p1", score=10, max_score=20, is_locked=True,
    ))

    response = client.put("/api/grades", json=[{
        "student_id": 1, "class_subject_id": 7, "assessment_type_id": 1,
        "period": "p1", "score": 20, "max_score": 20,
    }])

    assert response.status_code == 409
    assert f"[request_id: {response.headers['X-Request-ID']}]" in caplog.text
