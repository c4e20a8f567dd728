from app.services.eligibility_service import (
    build_eligibility_filter, effective_criteria, evaluate_student, recommendations_for
)


STUDENT = {"cgpa": 7.0, "backlogs": 2, "branch": "Civil Engineering", "batch": 2024, "placed": True}


def test_checks_run_in_fixed_order():
    criteria = {
        "min_cgpa": 8.0,
        "max_backlogs": 0,
        "eligible_branches": ["Computer Science"],
        "allowed_batches": [2025],
    }
    result = evaluate_student(STUDENT, criteria, window=None, require_window=True)
    assert result["eligible"] is False
    assert [c["criterion"] for c in result["criteria"]] == [
        "application_window", "placement_status", "cgpa", "backlogs", "branch", "batch"
    ]
    assert result["reason"] == "No active application window for this company"
    assert len(result["reasons"]) == 6
    assert len(recommendations_for(result)) == 6


def test_allow_placed_skips_placement_check():
    result = evaluate_student(STUDENT, {"allow_placed": True})
    assert result == {"eligible": True, "reason": None, "reasons": [], "criteria": []}


def test_backlog_message():
    result = evaluate_student({**STUDENT, "placed": False}, {"max_backlogs": 1})
    assert result["reason"] == "Number of backlogs (2) exceeds the maximum allowed (1)"


def test_window_overrides_company_values():
    company = {"eligibility_criteria": {"min_cgpa": 6.0, "allowed_branches": ["Civil Engineering"]}}
    window = {"min_cgpa": 7.5, "max_backlogs": None, "eligible_branches": [], "passing_year": 2026}
    criteria = effective_criteria(company, window)
    assert criteria["min_cgpa"] == 7.5
    assert criteria["eligible_branches"] == ["Civil Engineering"]
    assert criteria["allowed_batches"] == [2026]
    assert criteria["max_backlogs"] is None


def test_filter_matches_evaluation():
    criteria = {"min_cgpa": 7.0, "max_backlogs": 0, "eligible_branches": ["Computer Science"]}
    assert build_eligibility_filter(criteria) == {
        "placed": False,
        "cgpa": {"$gte": 7.0},
        "backlogs": {"$lte": 0},
        "branch": {"$in": ["Computer Science"]},
    }


def test_check_endpoint_reports_breakdown(client, admin_headers, make_company, make_student):
    company = make_company(eligibility_criteria={"min_cgpa": 9.0})
    student = make_student()
    response = client.post("/api/eligibility/check",
                           json={"student_id": str(student["_id"]), "company_id": str(company["_id"])},
                           headers=admin_headers)
    data = response.json()["data"]
    assert data["eligible"] is False
    assert data["application_window"] is None
    assert data["is_application_open"] is True
    assert data["recommendations"] == ["Focus on improving your CGPA in upcoming semesters"]
    assert data["existing_application"] is None
    assert data["next_steps"] == ["Review the unmet criteria and explore other companies"]


def test_bulk_check_summary(client, admin_headers, make_company, make_student):
    companies = [make_company("Easy Co"), make_company("Hard Co", eligibility_criteria={"min_cgpa": 9.5})]
    students = [make_student("CS001"), make_student("CS002", cgpa=9.8)]
    response = client.post("/api/eligibility/bulk-check", json={
        "student_ids": [str(s["_id"]) for s in students],
        "company_ids": [str(c["_id"]) for c in companies],
    }, headers=admin_headers)
    summary = response.json()["data"]["summary"]
    assert summary == {
        "students_checked": 2, "companies_checked": 2, "total_checks": 4, "eligible": 3, "not_eligible": 1
    }


def test_bulk_check_limits(client, admin_headers):
    response = client.post("/api/eligibility/bulk-check", json={
        "student_ids": ["x"] * 51, "company_ids": ["y"],
    }, headers=admin_headers)
    assert response.status_code == 400


def test_eligible_students_endpoint(client, admin_headers, make_company, make_student):
    make_student("CS001", cgpa=9.0)
    make_student("CS002", cgpa=8.0)
    make_student("CS003", cgpa=5.0)
    company = make_company(eligibility_criteria={"min_cgpa": 7.0})
    data = client.get(f"/api/eligibility/company/{company['_id']}/eligible-students",
                      params={"limit": 1}, headers=admin_headers).json()["data"]
    assert [s["roll_number"] for s in data["students"]] == ["CS001"]
    assert data["pagination"]["total"] == 2
