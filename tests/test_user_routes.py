from pymongo.errors import PyMongoError, WriteError

from app.services.mongo_service import RecordStore

from tests.conftest import HIERARCHY, auth_header, make_record


def test_create_job_seeker(client, admin, email_service):
    response = client.post("/api/users", json={"email": "a@b.com", "role": "job_seeker"}, headers=auth_header(admin))

    assert response.status_code == 201
    body = response.json()
    assert body["welcomeEmailSent"] is True
    assert body["user"]["onboardingStatus"] == "not_started"
    assert body["user"]["firstLogin"] is True
    assert body["user"]["createdBy"] == str(admin["_id"])
    assert "password" not in body["user"]
    assert [sent["to"] for sent in email_service.sent] == ["a@b.com"]


def test_create_reports_failed_welcome_email(client, admin, email_service):
    email_service.result = False
    response = client.post("/api/users", json={"email": "a@b.com", "role": "job_poster"}, headers=auth_header(admin))

    assert response.status_code == 201
    assert response.json()["welcomeEmailSent"] is False
    assert len(email_service.sent) == 1


def test_create_duplicate_email(client, admin):
    make_record("taken@b.com")
    response = client.post("/api/users", json={"email": "taken@b.com", "role": "job_poster"}, headers=auth_header(admin))
    assert response.status_code == 409


def test_create_admin_requires_super_admin(client, admin):
    response = client.post("/api/users", json={"email": "x@b.com", "role": "admin", **HIERARCHY}, headers=auth_header(admin))
    assert response.status_code == 403


def test_create_admin_missing_hierarchy(client, super_admin):
    payload = {"email": "x@b.com", "role": "admin", "milan": "M", "valaya": "V"}
    response = client.post("/api/users", json=payload, headers=auth_header(super_admin))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "khanda"


def test_create_requires_body_fields(client, admin):
    response = client.post("/api/users", json={"role": "job_seeker"}, headers=auth_header(admin))
    assert response.status_code == 400
    assert any(err["field"] == "email" for err in response.json()["errors"])


def test_create_without_token(client):
    response = client.post("/api/users", json={"email": "a@b.com", "role": "job_seeker"})
    assert response.status_code == 401


def test_create_with_bad_token(client):
    response = client.post(
        "/api/users",
        json={"email": "a@b.com", "role": "job_seeker"},
        headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


def test_non_admin_is_forbidden(client):
    seeker = make_record("seeker@b.com")
    response = client.get("/api/users", headers=auth_header(seeker))
    assert response.status_code == 403


def test_create_referrer(client, admin):
    payload = {
        "email": "ref@b.com",
        "referrerData": {"name": "Ravi", "phone": "9999999999", "companyName": "Acme", "designation": "Lead", **HIERARCHY},
    }
    response = client.post("/api/referrers", json=payload, headers=auth_header(admin))

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["role"] == "job_referrer"
    assert user["milan"] == HIERARCHY["milan"]
    assert user["referrerDetails"]["fullName"] == "Ravi"
    assert user["workDetails"]["companyName"] == "Acme"


def test_create_referrer_requires_referrer_data(client, admin):
    payload = {"email": "ref@b.com", "referrerData": {"name": "Ravi", **HIERARCHY}}
    response = client.post("/api/referrers", json=payload, headers=auth_header(admin))
    assert response.status_code == 400


def test_get_user_hides_password(client, admin):
    seeker = make_record("seeker@b.com")
    response = client.get(f"/api/users/{seeker['_id']}", headers=auth_header(admin))

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "seeker@b.com"
    assert "password" not in response.json()["user"]


def test_get_unknown_user(client, admin):
    response = client.get("/api/users/64b7f0c2a1b2c3d4e5f60718", headers=auth_header(admin))
    assert response.status_code == 404


def test_list_hides_admins_from_regular_admin(client, admin, super_admin):
    make_record("seeker@b.com")
    make_record("ref@b.com", role="job_referrer")

    listed = client.get("/api/users", headers=auth_header(admin)).json()["users"]
    assert {u["email"] for u in listed} == {"seeker@b.com", "ref@b.com"}

    everyone = client.get("/api/users", params={"all": "true"}, headers=auth_header(admin)).json()["users"]
    assert "root@example.com" in {u["email"] for u in everyone}


def test_list_search_and_created_by(client, admin, super_admin):
    make_record("mine@b.com", createdBy=str(admin["_id"]))
    make_record("other@b.com", createdBy=str(super_admin["_id"]))

    mine = client.get("/api/users", params={"createdBy": str(admin["_id"])}, headers=auth_header(admin))
    assert [u["email"] for u in mine.json()["users"]] == ["mine@b.com"]

    searched = client.get("/api/users", params={"search": "OTHER"}, headers=auth_header(super_admin))
    assert [u["email"] for u in searched.json()["users"]] == ["other@b.com"]


def test_regular_admin_cannot_filter_by_other_creator(client, admin, super_admin):
    response = client.get("/api/users", params={"createdBy": str(super_admin["_id"])}, headers=auth_header(admin))
    assert response.status_code == 403


def test_update_role_change_reconciles_details(client, admin):
    seeker = make_record("seeker@b.com", candidateDetails={"fullName": "S", "skills": ["Python"]})
    response = client.put(
        f"/api/users/{seeker['_id']}",
        json={"role": "job_poster", "jobPosterDetails": {"companyName": "Acme"}, "email": "new@b.com"},
        headers=auth_header(admin)
    )

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["role"] == "job_poster"
    assert user["email"] == "seeker@b.com"
    assert user["jobPosterDetails"]["companyName"] == "Acme"
    assert user.get("candidateDetails") is None


def test_update_to_referrer_without_hierarchy(client, admin):
    seeker = make_record("seeker@b.com")
    response = client.put(f"/api/users/{seeker['_id']}", json={"role": "job_referrer"}, headers=auth_header(admin))
    assert response.status_code == 400


def test_update_rejects_unknown_role(client, admin):
    seeker = make_record("seeker@b.com")
    response = client.put(f"/api/users/{seeker['_id']}", json={"role": "manager"}, headers=auth_header(admin))
    assert response.status_code == 400


def test_delete_self_forbidden(client, admin):
    response = client.delete(f"/api/users/{admin['_id']}", headers=auth_header(admin))

    assert response.status_code == 403
    assert response.json()["detail"] == "Cannot delete your own admin account."


def test_delete_other_admin(client, admin, super_admin):
    response = client.delete(f"/api/users/{admin['_id']}", headers=auth_header(super_admin))

    assert response.status_code == 200
    assert client.get(f"/api/users/{admin['_id']}", headers=auth_header(super_admin)).status_code == 404


def test_delete_referrer(client, admin):
    referrer = make_record("ref@b.com", role="job_referrer")
    response = client.delete(f"/api/users/{referrer['_id']}", headers=auth_header(admin))
    assert response.status_code == 200


def test_profile_update(client):
    seeker = make_record("seeker@b.com")
    response = client.put("/api/profile", json={"username": "renamed", "role": "admin"}, headers=auth_header(seeker))

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["username"] == "renamed"
    assert user["role"] == "job_seeker"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_schema_rejection_is_a_validation_error(client, admin, monkeypatch):
    details = {"errInfo": {"details": {"schemaRulesNotSatisfied": [
        {"propertiesNotSatisfied": [{"propertyName": "username", "details": ["too long"]}]}
    ]}}}

    def reject(self, record):
        raise WriteError("Document failed validation", 121, details)

    monkeypatch.setattr(RecordStore, "insert", reject)
    response = client.post("/api/users", json={"email": "a@b.com", "role": "job_seeker"}, headers=auth_header(admin))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "username"


def test_storage_failure_is_internal_error(client, admin, monkeypatch):
    def broken(self, record):
        raise PyMongoError("connection reset")

    monkeypatch.setattr(RecordStore, "insert", broken)
    response = client.post("/api/users", json={"email": "a@b.com", "role": "job_seeker"}, headers=auth_header(admin))
    assert response.status_code == 500
