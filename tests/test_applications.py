from datetime import datetime, timedelta

import pytest
from bson import ObjectId


@pytest.fixture
def applied(client, make_company, make_student, open_window, student_headers):
    """A student with one submitted application to an open company."""
    company = make_company()
    open_window(company)
    student = make_student()
    response = client.post("/api/applications", json={"company_id": str(company["_id"])},
                           headers=student_headers(student))
    assert response.status_code == 201
    return company, student, response.json()["data"]["application"]


def test_apply_stores_submission(applied, mongo):
    company, student, application = applied
    assert application["status"] == "submitted"
    assert application["company_id"] == str(company["_id"])
    assert application["student_id"] == str(student["_id"])
    assert application["window_id"] is not None


def test_apply_twice_is_rejected(client, applied, student_headers):
    company, student, _ = applied
    response = client.post("/api/applications", json={"company_id": str(company["_id"])},
                           headers=student_headers(student))
    assert response.status_code == 400
    assert response.json()["message"] == "You have already applied to this company"


def test_apply_without_open_window(client, make_company, make_student, student_headers):
    company = make_company()
    student = make_student()
    response = client.post("/api/applications", json={"company_id": str(company["_id"])},
                           headers=student_headers(student))
    assert response.status_code == 400
    assert response.json()["message"] == "No active application window for this company"


def test_apply_rejections(client, admin_headers, make_company, make_student, open_window, mongo):
    student = make_student()

    inactive = make_company("Sleepy Inc", status="inactive")
    open_window(inactive)
    response = client.post("/api/applications",
                           json={"company_id": str(inactive["_id"]), "student_id": str(student["_id"])},
                           headers=admin_headers)
    assert response.json()["message"] == "Company is not currently accepting applications"

    strict = make_company("Strict Ltd", eligibility_criteria={"min_cgpa": 9.0})
    open_window(strict)
    response = client.post("/api/applications",
                           json={"company_id": str(strict["_id"]), "student_id": str(student["_id"])},
                           headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "CGPA 8.0 is below the required minimum of 9.0"

    late = make_company("Late LLC")
    open_window(late)
    mongo["companies"].update_one({"_id": late["_id"]},
                                  {"$set": {"application_deadline": datetime.utcnow() - timedelta(hours=1)}})
    response = client.post("/api/applications",
                           json={"company_id": str(late["_id"]), "student_id": str(student["_id"])},
                           headers=admin_headers)
    assert response.json()["message"] == "Application deadline has passed"

    response = client.post("/api/applications",
                           json={"company_id": str(ObjectId()), "student_id": str(student["_id"])},
                           headers=admin_headers)
    assert response.status_code == 404


def test_placed_student_cannot_apply(client, admin_headers, make_company, make_student, open_window, mongo):
    student = make_student()
    mongo["students"].update_one({"_id": student["_id"]}, {"$set": {"placed": True}})
    company = make_company()
    open_window(company)
    response = client.post("/api/applications",
                           json={"company_id": str(company["_id"]), "student_id": str(student["_id"])},
                           headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "You are already placed and cannot apply to more companies"


def test_shortlisting_moves_to_first_round_and_notifies(client, admin_headers, applied, mongo):
    company, student, application = applied
    response = client.put(f"/api/applications/{application['_id']}/status",
                          json={"status": "shortlisted", "notes": "Strong resume", "score": 72},
                          headers=admin_headers)
    assert response.status_code == 200
    updated = response.json()["data"]["application"]
    first_round = mongo["recruitment_rounds"].find_one({"company_id": company["_id"], "round_number": 1})
    assert updated["round_id"] == str(first_round["_id"])
    assert updated["recruiter_notes"] == "Strong resume"
    assert updated["score"] == 72

    history = list(mongo["application_review_history"].find({"application_id": ObjectId(application["_id"])}))
    assert len(history) == 1
    assert history[0]["old_status"] == "submitted"
    assert history[0]["new_status"] == "shortlisted"
    assert history[0]["review_type"] == "both"

    notification = mongo["notifications"].find_one({"type": "application_status"})
    assert notification["recipient_id"] == student["_id"]
    assert notification["message"] == "Your application for Acme Corp has been shortlisted for the next round."

    response = client.put(f"/api/applications/{application['_id']}/status",
                          json={"status": "shortlisted"}, headers=admin_headers)
    second_round = mongo["recruitment_rounds"].find_one({"company_id": company["_id"], "round_number": 2})
    assert response.json()["data"]["application"]["round_id"] == str(second_round["_id"])


def test_selection_marks_student_placed(client, admin_headers, applied, mongo):
    company, student, application = applied
    client.put(f"/api/applications/{application['_id']}/status", json={"status": "selected"},
               headers=admin_headers)
    stored = mongo["students"].find_one({"_id": student["_id"]})
    assert stored["placed"] is True
    assert stored["placed_company"] == company["_id"]
    assert stored["package"] == "12 LPA"


def test_transitions_are_unconstrained(client, admin_headers, applied):
    _, _, application = applied
    for status in ["rejected", "submitted", "under-review"]:
        response = client.put(f"/api/applications/{application['_id']}/status", json={"status": status},
                              headers=admin_headers)
        assert response.json()["data"]["application"]["status"] == status


def test_score_update_records_history(client, admin_headers, applied):
    _, _, application = applied
    response = client.put(f"/api/applications/{application['_id']}/score", json={"score": 55.5},
                          headers=admin_headers)
    assert response.json()["data"]["application"]["score"] == 55.5

    response = client.get(f"/api/applications/{application['_id']}", headers=admin_headers)
    detail = response.json()["data"]["application"]
    assert detail["review_history"][0]["review_type"] == "score_update"
    assert detail["company"]["name"] == "Acme Corp"
    assert detail["student"]["roll_number"] == "CS001"


def test_bulk_update_reports_failures(client, admin_headers, applied):
    _, _, application = applied
    response = client.post("/api/applications/bulk-update", json={
        "application_ids": [application["_id"], str(ObjectId()), "junk"],
        "status": "rejected",
    }, headers=admin_headers)
    result = response.json()["data"]
    assert result["requested"] == 3
    assert result["updated"] == 1
    assert [f["reason"] for f in result["failed"]] == ["Application not found", "Invalid application ID"]


def test_list_and_stats_scope_by_role(client, admin_headers, applied, make_company, recruiter_for,
                                      student_headers, make_student):
    company, student, application = applied
    client.put(f"/api/applications/{application['_id']}/status", json={"status": "under-review", "score": 80},
               headers=admin_headers)

    other_company = make_company("Other Co")
    recruiter_headers = recruiter_for(other_company)
    assert client.get("/api/applications", headers=recruiter_headers).json()["data"]["pagination"]["total"] == 0
    assert client.get(f"/api/applications/{application['_id']}", headers=recruiter_headers).status_code == 403

    own = client.get("/api/applications", headers=recruiter_for(company)).json()["data"]
    assert own["pagination"]["total"] == 1
    assert own["applications"][0]["company_name"] == "Acme Corp"

    outsider = student_headers(make_student("CS002"))
    assert client.get("/api/applications", headers=outsider).json()["data"]["pagination"]["total"] == 0

    stats = client.get("/api/applications/stats", headers=admin_headers).json()["data"]
    assert stats["total"] == 1
    assert stats["under-review"] == 1
    assert stats["avg_score"] == 80


def test_list_filters_by_search_and_score(client, admin_headers, applied):
    _, _, application = applied
    client.put(f"/api/applications/{application['_id']}/score", json={"score": 40}, headers=admin_headers)

    found = client.get("/api/applications", params={"search": "CS001"}, headers=admin_headers).json()["data"]
    assert found["pagination"]["total"] == 1
    high = client.get("/api/applications", params={"min_score": 50}, headers=admin_headers).json()["data"]
    assert high["pagination"]["total"] == 0


def test_student_and_company_listings(client, admin_headers, applied):
    company, student, _ = applied
    by_student = client.get(f"/api/applications/student/{student['_id']}", headers=admin_headers).json()["data"]
    assert by_student["applications"][0]["company_name"] == "Acme Corp"
    assert by_student["stats"]["submitted"] == 1

    by_company = client.get(f"/api/applications/company/{company['_id']}", headers=admin_headers).json()["data"]
    assert by_company["applications"][0]["student"]["name"] == "Student CS001"


def test_review_history_endpoints(client, admin_headers, admin, applied):
    company, _, application = applied
    client.put(f"/api/applications/{application['_id']}/status", json={"status": "under-review"},
               headers=admin_headers)
    client.put(f"/api/applications/{application['_id']}/score", json={"score": 60}, headers=admin_headers)

    history = client.get(f"/api/applications/{application['_id']}/history", headers=admin_headers).json()["data"]
    assert [h["review_type"] for h in history["history"]] == ["score_update", "status_change"]

    overview = client.get("/api/applications/review/history",
                          params={"company_id": str(company["_id"])}, headers=admin_headers).json()["data"]
    assert overview["statistics"]["total_reviews"] == 2
    assert overview["statistics"]["by_review_type"]["status_change"] == 1

    mine = client.get("/api/applications/review/my-activity", params={"days": 7},
                      headers=admin_headers).json()["data"]
    assert len(mine["activity"]) == 2
    assert len(mine["daily"]) == 7
    assert mine["daily"][-1]["count"] == 2


def test_students_cannot_review_applications(client, applied, student_headers, mongo):
    _, student, application = applied
    headers = student_headers(student)

    response = client.put(f"/api/applications/{application['_id']}/status", json={"status": "selected"},
                          headers=headers)
    assert response.status_code == 403
    assert mongo["students"].find_one({"_id": student["_id"]})["placed"] is False

    response = client.put(f"/api/applications/{application['_id']}/score", json={"score": 99}, headers=headers)
    assert response.status_code == 403

    response = client.post("/api/applications/bulk-update", json={
        "application_ids": [application["_id"]], "status": "selected",
    }, headers=headers)
    assert response.status_code == 403
    assert mongo["applications"].find_one({})["status"] == "submitted"


def test_students_apply_and_read_only_as_themselves(client, make_company, make_student, open_window,
                                                    student_headers, recruiter_for, mongo):
    company = make_company()
    open_window(company)
    own = make_student("CS001")
    other = make_student("CS002")
    headers = student_headers(own)

    response = client.post("/api/applications",
                           json={"company_id": str(company["_id"]), "student_id": str(other["_id"])},
                           headers=headers)
    assert response.status_code == 403
    assert mongo["applications"].count_documents({}) == 0

    response = client.post("/api/applications",
                           json={"company_id": str(company["_id"]), "student_id": str(other["_id"])},
                           headers=recruiter_for(company))
    assert response.status_code == 403

    response = client.post("/api/applications",
                           json={"company_id": str(company["_id"]), "student_id": str(own["_id"])},
                           headers=headers)
    assert response.status_code == 201

    assert client.get(f"/api/applications/student/{other['_id']}", headers=headers).status_code == 403
    assert client.get(f"/api/applications/student/{own['_id']}", headers=headers).status_code == 200
    assert client.get(f"/api/students/{other['_id']}", headers=headers).status_code == 403
    assert client.get(f"/api/students/{own['_id']}", headers=headers).status_code == 200


def test_stats_without_scores_average_zero(client, admin_headers, applied):
    company, student, _ = applied
    stats = client.get("/api/applications/stats", params={"company_id": str(company["_id"])},
                       headers=admin_headers).json()["data"]
    assert stats["total"] == 1
    assert stats["avg_score"] == 0

    empty = client.get("/api/applications/stats", params={"company_id": str(ObjectId())},
                       headers=admin_headers).json()["data"]
    assert empty["total"] == 0
    assert empty["avg_score"] == 0
