from app.services.user_service import UserService
from tests.conftest import auth_header


def create_user(client, headers, **overrides):
    payload = {"name": "Jane Doe", "email": "jane@test.com", "password": "secret123", "role": "admin"}
    payload.update(overrides)
    return client.post("/api/users", json=payload, headers=headers)


def test_create_user_hashes_password_and_hides_it(client, admin_headers, mongo):
    response = create_user(client, admin_headers, email="Jane@Test.com")
    assert response.status_code == 201
    user = response.json()["data"]["user"]
    assert user["email"] == "jane@test.com"
    assert "password_hash" not in user

    stored = mongo["users"].find_one({"email": "jane@test.com"})
    assert stored["password_hash"] != "secret123"
    assert stored["password_hash"].startswith("$2")


def test_duplicate_email_is_rejected(client, admin_headers):
    create_user(client, admin_headers)
    response = create_user(client, admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "User with this email already exists"


def test_recruiter_requires_company(client, admin_headers):
    response = create_user(client, admin_headers, role="recruiter")
    assert response.status_code == 400


def test_list_users_filters_and_paginates(client, admin_headers):
    for i in range(3):
        create_user(client, admin_headers, name=f"Student {i}", email=f"s{i}@test.com", role="student")

    response = client.get("/api/users", params={"role": "student", "limit": 2}, headers=admin_headers)
    data = response.json()["data"]
    assert len(data["users"]) == 2
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    response = client.get("/api/users", params={"search": "s1@"}, headers=admin_headers)
    assert [u["email"] for u in response.json()["data"]["users"]] == ["s1@test.com"]


def test_user_stats(client, admin_headers):
    create_user(client, admin_headers, email="b@test.com", role="student", is_active=False)
    data = client.get("/api/users/stats", headers=admin_headers).json()["data"]
    assert data["total"] == 2
    assert data["active"] == 1
    assert data["inactive"] == 1
    assert data["by_role"] == {"admin": 1, "recruiter": 0, "student": 1}


def test_only_admins_change_role(client, admin_headers, mongo):
    other = UserService().create_user("Plain Student", "plain@test.com", "secret123", role="student")
    response = client.put(f"/api/users/{other['_id']}", json={"role": "admin"}, headers=auth_header(other))
    assert response.status_code == 403

    response = client.put(f"/api/users/{other['_id']}", json={"role": "admin"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "admin"


def test_update_email_must_be_unique(client, admin_headers, admin):
    other = UserService().create_user("Other User", "other@test.com", "secret123")
    response = client.put(f"/api/users/{other['_id']}", json={"email": "admin@test.com"}, headers=admin_headers)
    assert response.status_code == 400


def test_cannot_delete_or_deactivate_self(client, admin_headers, admin):
    assert client.delete(f"/api/users/{admin['_id']}", headers=admin_headers).status_code == 400
    assert client.post(f"/api/users/{admin['_id']}/deactivate", headers=admin_headers).status_code == 400


def test_deactivate_and_activate(client, admin_headers, mongo):
    other = UserService().create_user("Other User", "other@test.com", "secret123")
    response = client.post(f"/api/users/{other['_id']}/deactivate", headers=admin_headers)
    assert response.json()["data"]["user"]["is_active"] is False
    response = client.post(f"/api/users/{other['_id']}/activate", headers=admin_headers)
    assert response.json()["data"]["user"]["is_active"] is True


def test_deleting_student_user_cascades(client, admin_headers, make_student, mongo):
    student = make_student()
    response = client.delete(f"/api/users/{student['user_id']}", headers=admin_headers)
    assert response.status_code == 200
    assert mongo["students"].count_documents({}) == 0
    assert mongo["users"].count_documents({"_id": student["user_id"]}) == 0


def test_user_management_is_admin_only(client, admin, mongo):
    student = UserService().create_user("Plain Student", "plain@test.com", "secret123", role="student")
    headers = auth_header(student)

    assert client.get("/api/users", headers=headers).status_code == 403
    assert create_user(client, headers, email="sneaky@test.com").status_code == 403
    assert mongo["users"].count_documents({"email": "sneaky@test.com"}) == 0
    assert client.post(f"/api/users/{admin['_id']}/deactivate", headers=headers).status_code == 403
    assert client.get(f"/api/users/{admin['_id']}", headers=headers).status_code == 403

    response = client.get(f"/api/users/{student['_id']}", headers=headers)
    assert response.json()["data"]["user"]["email"] == "plain@test.com"
