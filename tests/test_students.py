import pytest


def student_payload(**overrides):
    payload = {
        "name": "Asha Rao",
        "email": "asha@college.edu",
        "roll_number": "cs101",
        "branch": "Computer Science",
        "cgpa": 8.4,
        "phone": "9876543210",
        "batch": 2025,
        "skills": [" Python ", "", "SQL"],
    }
    payload.update(overrides)
    return payload


def test_create_student_normalizes_and_links_user(client, admin_headers, mongo):
    response = client.post("/api/students", json=student_payload(), headers=admin_headers)
    assert response.status_code == 201
    student = response.json()["data"]["student"]
    assert student["roll_number"] == "CS101"
    assert student["skills"] == ["Python", "SQL"]
    assert student["placed"] is False
    assert student["name"] == "Asha Rao"
    assert student["email"] == "asha@college.edu"

    user = mongo["users"].find_one({"email": "asha@college.edu"})
    assert user["role"] == "student"
    assert str(user["_id"]) == student["user_id"]


@pytest.mark.parametrize("overrides, message", [
    ({"email": "other@college.edu"}, "Student with this roll number already exists"),
    ({"roll_number": "CS999"}, "User with this email already exists"),
])
def test_duplicate_student_is_rejected(client, admin_headers, overrides, message):
    client.post("/api/students", json=student_payload(), headers=admin_headers)
    response = client.post("/api/students", json=student_payload(**overrides), headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == message


def test_invalid_phone_and_cgpa_fail_validation(client, admin_headers):
    response = client.post("/api/students", json=student_payload(phone="123", cgpa=11), headers=admin_headers)
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"phone", "cgpa"} <= fields


def test_list_students_search_by_name_and_filters(client, admin_headers, make_student):
    make_student("CS001", name="Ravi Kumar", cgpa=9.1)
    make_student("ME001", name="Meera Iyer", branch="Mechanical Engineering", cgpa=6.5)

    response = client.get("/api/students", params={"search": "ravi"}, headers=admin_headers)
    assert [s["roll_number"] for s in response.json()["data"]["students"]] == ["CS001"]

    response = client.get("/api/students", params={"min_cgpa": 7}, headers=admin_headers)
    assert [s["roll_number"] for s in response.json()["data"]["students"]] == ["CS001"]

    response = client.get("/api/students", params={"branch": "Mechanical Engineering"}, headers=admin_headers)
    assert response.json()["data"]["pagination"]["total"] == 1


def test_student_can_only_edit_own_basic_fields(client, make_student, student_headers):
    own = make_student("CS001")
    other = make_student("CS002")
    headers = student_headers(own)

    response = client.put(f"/api/students/{own['_id']}", json={"phone": "9123456780", "cgpa": 10}, headers=headers)
    assert response.status_code == 200
    student = response.json()["data"]["student"]
    assert student["phone"] == "9123456780"
    assert student["cgpa"] == 8.0

    response = client.put(f"/api/students/{own['_id']}", json={"cgpa": 10}, headers=headers)
    assert response.status_code == 400

    response = client.put(f"/api/students/{other['_id']}", json={"phone": "9123456780"}, headers=headers)
    assert response.status_code == 403


def test_admin_update_moves_name_to_user(client, admin_headers, make_student, mongo):
    student = make_student("CS001")
    response = client.put(f"/api/students/{student['_id']}", json={"name": "New Name", "cgpa": 9.5},
                          headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["student"]["name"] == "New Name"
    assert mongo["users"].find_one({"_id": student["user_id"]})["name"] == "New Name"
    assert "name" not in mongo["students"].find_one({"_id": student["_id"]})


def test_delete_student_cascades(client, admin_headers, make_student, make_company, open_window,
                                 student_headers, mongo):
    student = make_student("CS001")
    company = make_company()
    open_window(company)
    client.post("/api/applications", json={"company_id": str(company["_id"])}, headers=student_headers(student))
    assert mongo["applications"].count_documents({}) == 1

    response = client.delete(f"/api/students/{student['_id']}", headers=admin_headers)
    assert response.json()["data"] == {"applications_deleted": 1}
    assert mongo["applications"].count_documents({}) == 0
    assert mongo["users"].count_documents({"_id": student["user_id"]}) == 0


def test_bulk_json_reports_each_row(client, admin_headers, mongo):
    rows = [
        student_payload(),
        student_payload(email="dup@college.edu"),
        student_payload(email="bad@college.edu", roll_number="CS102", cgpa=12),
        student_payload(email="ok@college.edu", roll_number="CS103", name="Second One"),
    ]
    response = client.post("/api/students/bulk", json={"students": rows}, headers=admin_headers)
    assert response.status_code == 200
    result = response.json()["data"]
    assert result["total"] == 4
    assert result["created"] == 2
    assert [d["row"] for d in result["duplicates"]] == [2]
    assert [e["row"] for e in result["errors"]] == [3]
    assert result["errors"][0]["reason"].startswith("cgpa")

    user = mongo["users"].find_one({"email": "ok@college.edu"})
    assert user["password_hash"]


def test_bulk_csv_upload(client, admin_headers, mongo):
    content = (
        "Name,Email,Roll Number,Branch,CGPA,Phone,Batch,Skills\n"
        "Kiran Das,kiran@college.edu,EC201,Electronics and Communication,7.9,9876501234,2025,Python;C\n"
        "Broken Row,broken@college.edu,EC202,Unknown Branch,7.0,9876501235,2025,\n"
    ).encode("utf-8")
    response = client.post(
        "/api/students/bulk-upload",
        files={"file": ("students.csv", content, "text/csv")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    result = response.json()["data"]
    assert result["created"] == 1
    assert result["errors"][0]["row"] == 2
    assert mongo["students"].find_one({"roll_number": "EC201"})["skills"] == ["Python", "C"]


def test_bulk_upload_rejects_other_file_types(client, admin_headers):
    response = client.post(
        "/api/students/bulk-upload",
        files={"file": ("students.xlsx", b"data", "application/octet-stream")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["message"]


def test_eligible_students_for_company(client, admin_headers, make_student, make_company):
    make_student("CS001", cgpa=8.5)
    make_student("CS002", cgpa=6.0)
    company = make_company(eligibility_criteria={"min_cgpa": 7.0})

    response = client.get(f"/api/students/eligible/{company['_id']}", headers=admin_headers)
    data = response.json()["data"]
    assert [s["roll_number"] for s in data["students"]] == ["CS001"]
    assert data["criteria"]["min_cgpa"] == 7.0
