"""
Dashboards, reports, search and the recruiter views.
"""

from datetime import datetime, timedelta

import pytest

from app.services.analytics_service import daily_trend, rate


@pytest.fixture
def drive(client, admin_headers, make_company, make_student, open_window, student_headers):
    """Two companies; Acme selects CS001 and rejects ME001, Globex gets one pending application."""
    acme = make_company()
    globex = make_company("Globex", industry="Consulting")
    open_window(acme)
    open_window(globex)
    cs = make_student("CS001", skills=["Python", "Django"])
    me = make_student("ME001", branch="Mechanical Engineering", cgpa=7.0)

    def apply(student, company):
        return client.post("/api/applications", json={"company_id": str(company["_id"])},
                           headers=student_headers(student)).json()["data"]["application"]

    acme_cs = apply(cs, acme)
    acme_me = apply(me, acme)
    apply(me, globex)
    client.put(f"/api/applications/{acme_cs['_id']}/status", json={"status": "selected", "score": 90},
               headers=admin_headers)
    client.put(f"/api/applications/{acme_me['_id']}/status", json={"status": "rejected", "score": 40},
               headers=admin_headers)
    return {"acme": acme, "globex": globex, "cs": cs, "me": me}


def test_daily_trend_and_rate():
    now = datetime(2024, 3, 10, 15, 0)
    trend = daily_trend([now, now - timedelta(hours=1), now - timedelta(days=2)], 3, now)
    assert trend == [
        {"date": "2024-03-08", "count": 1},
        {"date": "2024-03-09", "count": 0},
        {"date": "2024-03-10", "count": 2},
    ]
    assert rate(1, 3) == 33.33
    assert rate(5, 0) == 0


def test_admin_dashboard(client, admin_headers, drive):
    data = client.get("/api/dashboard/admin", headers=admin_headers).json()["data"]
    assert data["overview"]["total_students"] == 2
    assert data["overview"]["placed_students"] == 1
    assert data["overview"]["placement_rate"] == 50
    assert data["overview"]["total_companies"] == 2
    assert data["overview"]["active_windows"] == 2
    assert data["application_stats"]["selected"] == 1
    assert data["top_companies"][0]["name"] == "Acme Corp"
    assert data["top_companies"][0]["applications"] == 2
    branches = {b["branch"]: b for b in data["branch_stats"]}
    assert branches["Computer Science"]["placement_rate"] == 100


def test_recruiter_dashboard(client, drive, recruiter_for):
    acme = drive["acme"]
    headers = recruiter_for(acme)
    data = client.get(f"/api/dashboard/recruiter/{acme['_id']}", headers=headers).json()["data"]
    assert data["application_stats"]["total"] == 2
    assert [r["name"] for r in data["round_progress"]] == ["Aptitude Test", "Technical Interview", "HR Interview"]
    assert len(data["daily_trend"]) == 30
    assert data["daily_trend"][-1]["count"] == 2

    globex = drive["globex"]
    assert client.get(f"/api/dashboard/recruiter/{globex['_id']}", headers=headers).status_code == 403


def test_student_dashboard(client, drive, make_company, student_headers):
    me = drive["me"]
    make_company("Fresh Co")
    data = client.get(f"/api/dashboard/student/{me['_id']}", headers=student_headers(me)).json()["data"]
    assert data["application_stats"]["total"] == 2
    assert data["profile_completion"] == 66.67
    assert [c["name"] for c in data["eligible_companies"]] == ["Fresh Co"]
    assert data["eligible_companies"][0]["window_open"] is False

    cs = drive["cs"]
    assert client.get(f"/api/dashboard/student/{cs['_id']}", headers=student_headers(me)).status_code == 403


def test_overall_analytics(client, admin_headers, drive):
    data = client.get("/api/dashboard/analytics/overall", params={"period": "week"},
                      headers=admin_headers).json()["data"]
    assert data["period"] == "week"
    assert data["applications"]["total"] == 3
    assert data["placements"] == 1
    assert data["new_students"] == 2
    assert len(data["trend"]) == 7


def test_reports(client, admin_headers, drive):
    acme = drive["acme"]
    applications = client.get("/api/reports/applications", params={"company_id": str(acme["_id"])},
                              headers=admin_headers).json()["data"]
    assert applications["summary"]["total"] == 2
    assert applications["summary"]["avg_score"] == 65
    assert {row["roll_number"] for row in applications["applications"]} == {"CS001", "ME001"}

    students = client.get("/api/reports/students", headers=admin_headers).json()["data"]
    counts = {s["roll_number"]: s["applications_count"] for s in students["students"]}
    assert counts == {"CS001": 1, "ME001": 2}

    placements = client.get("/api/reports/placements", headers=admin_headers).json()["data"]
    assert placements["by_company"] == [
        {"company_id": str(acme["_id"]), "name": "Acme Corp", "package_offered": "12 LPA", "placed": 1}
    ]
    assert placements["students"][0]["placed_company_name"] == "Acme Corp"

    performance = client.get("/api/reports/company-performance", headers=admin_headers).json()["data"]
    by_name = {c["name"]: c for c in performance["companies"]}
    assert by_name["Acme Corp"]["selection_rate"] == 50
    assert by_name["Acme Corp"]["positions_filled_rate"] == 20
    assert by_name["Globex"]["submitted"] == 1


def test_global_search_hides_people_from_anonymous(client, admin_headers, drive):
    anonymous = client.get("/api/search/global", params={"q": "acme"}).json()["data"]
    assert set(anonymous["results"]) == {"companies", "opportunities"}
    assert anonymous["results"]["companies"][0]["name"] == "Acme Corp"

    staff = client.get("/api/search/global", params={"q": "CS001"}, headers=admin_headers).json()["data"]
    assert [s["roll_number"] for s in staff["results"]["students"]] == ["CS001"]
    assert len(staff["results"]["applications"]) == 1


def test_suggestions(client, drive):
    skills = client.get("/api/search/suggestions", params={"q": "dj", "type": "skills"}).json()["data"]
    assert skills["suggestions"] == ["Django"]
    branches = client.get("/api/search/suggestions", params={"q": "mech", "type": "branches"}).json()["data"]
    assert branches["suggestions"] == ["Mechanical Engineering"]
    companies = client.get("/api/search/suggestions", params={"q": "glo"}).json()["data"]
    assert companies["suggestions"] == ["Globex"]


def test_advanced_search(client, admin_headers, drive, student_headers):
    response = client.post("/api/search/advanced", json={
        "entity": "students", "filters": {"min_cgpa": 7.5, "skills": ["Python"]},
    }, headers=admin_headers)
    assert [s["roll_number"] for s in response.json()["data"]["results"]] == ["CS001"]

    response = client.post("/api/search/advanced", json={
        "entity": "applications", "filters": {"min_score": 50},
    }, headers=admin_headers)
    assert response.json()["data"]["pagination"]["total"] == 1

    response = client.post("/api/search/advanced", json={"entity": "applications"},
                           headers=student_headers(drive["cs"]))
    assert response.status_code == 403


def test_recruiter_views(client, admin_headers, drive, recruiter_for, student_headers, mongo):
    acme = drive["acme"]
    headers = recruiter_for(acme)

    companies = client.get("/api/recruiter/companies", headers=headers).json()["data"]["companies"]
    assert [c["name"] for c in companies] == ["Acme Corp"]
    assert len(client.get("/api/recruiter/companies", headers=admin_headers).json()["data"]["companies"]) == 2
    assert client.get("/api/recruiter/companies", headers=student_headers(drive["cs"])).status_code == 403

    analytics = client.get("/api/recruiter/analytics/dashboard", params={"period": "7d"},
                           headers=headers).json()["data"]
    assert analytics["application_stats"]["total"] == 2
    assert analytics["conversion"]["selection_rate"] == 50
    assert len(analytics["trend"]) == 7

    listing = client.get("/api/recruiter/applications", params={"status": "rejected"}, headers=headers).json()
    assert listing["data"]["applications"][0]["student"]["roll_number"] == "ME001"

    globex_app = mongo["applications"].find_one({"company_id": drive["globex"]["_id"]})
    response = client.put(f"/api/recruiter/applications/{globex_app['_id']}/status",
                          json={"status": "shortlisted"}, headers=headers)
    assert response.status_code == 403

    acme_apps = [str(a["_id"]) for a in mongo["applications"].find({"company_id": acme["_id"]})]
    response = client.put("/api/recruiter/applications/bulk-update", json={
        "application_ids": acme_apps + [str(globex_app["_id"])], "action": "shortlist",
    }, headers=headers)
    result = response.json()["data"]
    assert result["updated"] == 2
    assert result["failed"] == [{"application_id": str(globex_app["_id"]), "reason": "Access denied"}]
