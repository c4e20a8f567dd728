from datetime import datetime, timedelta

from app.services.notification_service import status_message, time_ago


def test_time_ago():
    now = datetime(2024, 1, 10, 12, 0, 0)
    assert time_ago(now - timedelta(seconds=20), now) == "Just now"
    assert time_ago(now - timedelta(minutes=1), now) == "1 minute ago"
    assert time_ago(now - timedelta(hours=5), now) == "5 hours ago"
    assert time_ago(now - timedelta(days=2, hours=3), now) == "2 days ago"


def test_status_messages():
    assert status_message("selected", "Acme") == "Congratulations! You have been selected by Acme!"
    assert status_message("rejected", "Acme") == "Your application for Acme has been rejected."
    assert status_message("under-review", "Acme") == "Your application status for Acme has been updated to: under-review"


def post_notification(client, headers, student, message="Hello"):
    return client.post("/api/notifications", json={
        "recipient_id": str(student["_id"]),
        "type": "system_update",
        "message": message,
    }, headers=headers)


def test_list_count_and_mark_read(client, admin_headers, make_student, student_headers):
    student = make_student()
    ids = [post_notification(client, admin_headers, student, f"Note {i}").json()["data"]["notification"]["_id"]
           for i in range(3)]
    headers = student_headers(student)

    data = client.get(f"/api/notifications/student/{student['_id']}", headers=headers).json()["data"]
    assert data["unread_count"] == 3
    assert data["notifications"][0]["message"] == "Note 2"
    assert data["notifications"][0]["time_ago"] == "Just now"

    response = client.put(f"/api/notifications/student/{student['_id']}/mark-read",
                          json={"notification_ids": ids[:1]}, headers=headers)
    assert response.json()["data"]["modified"] == 1
    count = client.get(f"/api/notifications/student/{student['_id']}/count", headers=headers).json()["data"]
    assert count["unread_count"] == 2

    unread = client.get(f"/api/notifications/student/{student['_id']}", params={"unread_only": True},
                        headers=headers).json()["data"]
    assert unread["pagination"]["total"] == 2

    response = client.put(f"/api/notifications/student/{student['_id']}/mark-read",
                          json={"mark_all": True}, headers=headers)
    assert response.json()["data"]["modified"] == 2

    response = client.put(f"/api/notifications/student/{student['_id']}/mark-read", json={}, headers=headers)
    assert response.status_code == 400


def test_students_cannot_read_others(client, admin_headers, make_student, student_headers):
    own = make_student("CS001")
    other = make_student("CS002")
    response = client.get(f"/api/notifications/student/{other['_id']}", headers=student_headers(own))
    assert response.status_code == 403


def test_cleanup_removes_old_read_only(client, admin_headers, make_student, mongo):
    student = make_student()
    old = datetime.utcnow() - timedelta(days=45)
    mongo["notifications"].insert_many([
        {"recipient_id": student["_id"], "type": "system_update", "message": "old read", "read": True,
         "timestamp": old},
        {"recipient_id": student["_id"], "type": "system_update", "message": "old unread", "read": False,
         "timestamp": old},
        {"recipient_id": student["_id"], "type": "system_update", "message": "new read", "read": True,
         "timestamp": datetime.utcnow()},
    ])
    response = client.delete(f"/api/notifications/student/{student['_id']}/cleanup", params={"days_old": 30},
                             headers=admin_headers)
    assert response.json()["data"]["deleted"] == 1
    assert {n["message"] for n in mongo["notifications"].find()} == {"old unread", "new read"}


def test_generate_application_update(client, admin_headers, make_company, make_student, open_window,
                                     student_headers, mongo):
    company = make_company()
    open_window(company)
    student = make_student()
    application = client.post("/api/applications", json={"company_id": str(company["_id"])},
                              headers=student_headers(student)).json()["data"]["application"]

    response = client.post("/api/notifications/generate-application-update",
                           json={"application_id": application["_id"], "status": "selected"},
                           headers=admin_headers)
    assert response.status_code == 201
    notification = response.json()["data"]["notification"]
    assert notification["message"] == "Congratulations! You have been selected by Acme Corp!"
    assert notification["metadata"]["application_id"] == application["_id"]
