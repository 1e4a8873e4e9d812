from datetime import timedelta

import pytest

from app.core.auth import decode_token
from app.core.exceptions import ValidationError
from app.services.mongo_service import RecordStore, ReferralCodeStore, to_object_id
from app.services.onboarding_service import validate_referrer_onboarding, validate_seeker_onboarding
from app.utils.clock import utcnow

from tests.conftest import auth_header, make_record

SEEKER_FORM = {"fullName": "Asha Rao", "phone": "9876543210", "skills": "Python, SQL ,", "experience": "3 years"}
PDF = ("cv.pdf", b"%PDF-1.4 resume", "application/pdf")

REFERRER_BODY = {
    "fullName": "Ravi Kumar",
    "mobileNumber": "98765 43210",
    "personalEmail": "Ravi@Home.com",
    "residentialAddress": "12 MG Road",
    "companyName": "Acme",
    "workLocation": "Pune",
    "designation": "Lead",
}


# ------------------------------------------------------------
# Validation
# ------------------------------------------------------------

def test_validate_seeker_onboarding_splits_skills():
    details = validate_seeker_onboarding(SEEKER_FORM)
    assert details["skills"] == ["Python", "SQL"]
    assert details["fullName"] == "Asha Rao"


def test_validate_seeker_onboarding_lists_missing_fields():
    with pytest.raises(ValidationError) as exc:
        validate_seeker_onboarding({**SEEKER_FORM, "phone": " ", "experience": None})
    assert [err["field"] for err in exc.value.errors] == ["phone", "experience"]


def test_validate_seeker_onboarding_needs_a_skill():
    with pytest.raises(ValidationError):
        validate_seeker_onboarding({**SEEKER_FORM, "skills": " , ,"})


def test_validate_referrer_onboarding_groups_details():
    details = validate_referrer_onboarding(REFERRER_BODY)
    assert details["referrerDetails"]["personalEmail"] == "ravi@home.com"
    assert details["workDetails"] == {"companyName": "Acme", "workLocation": "Pune", "designation": "Lead"}


@pytest.mark.parametrize("field,value", [
    ("mobileNumber", "12345"),
    ("mobileNumber", "98765432101"),
    ("personalEmail", "not-an-email"),
    ("designation", ""),
])
def test_validate_referrer_onboarding_rejects(field, value):
    with pytest.raises(ValidationError):
        validate_referrer_onboarding({**REFERRER_BODY, field: value})


# ------------------------------------------------------------
# POST /seeker/onboarding
# ------------------------------------------------------------

def test_seeker_onboarding_completes(client, resume_bucket):
    seeker = make_record("seeker@b.com", firstLogin=True)
    response = client.post(
        "/api/seeker/onboarding", data=SEEKER_FORM, files={"resume": PDF}, headers=auth_header(seeker)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["onboardingStatus"] == "completed"
    assert body["user"]["candidateDetails"]["skills"] == ["Python", "SQL"]
    assert decode_token(body["accessToken"])["onboardingStatus"] == "completed"

    stored = RecordStore("users").find_by_email("seeker@b.com")
    assert stored["firstLogin"] is False
    assert to_object_id(stored["resumeGridFsId"]) in resume_bucket.files


def test_seeker_onboarding_replaces_resume(client, resume_bucket):
    seeker = make_record("seeker@b.com")
    old_id = client.post("/api/resumes", files={"file": PDF}, headers=auth_header(seeker)).json()["resumeGridFsId"]

    client.post("/api/seeker/onboarding", data=SEEKER_FORM, files={"resume": PDF}, headers=auth_header(seeker))

    new_id = RecordStore("users").find_by_email("seeker@b.com")["resumeGridFsId"]
    assert new_id != old_id
    assert list(resume_bucket.files) == [to_object_id(new_id)]


def test_seeker_onboarding_missing_fields_stores_nothing(client, resume_bucket):
    seeker = make_record("seeker@b.com")
    response = client.post(
        "/api/seeker/onboarding",
        data={"fullName": "Asha Rao"},
        files={"resume": PDF},
        headers=auth_header(seeker)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "All fields are required"
    assert resume_bucket.files == {}
    assert RecordStore("users").find_by_email("seeker@b.com")["onboardingStatus"] == "not_started"


def test_seeker_onboarding_rejects_bad_resume(client, resume_bucket):
    seeker = make_record("seeker@b.com")
    response = client.post(
        "/api/seeker/onboarding",
        data=SEEKER_FORM,
        files={"resume": ("cv.exe", b"MZ", "application/octet-stream")},
        headers=auth_header(seeker)
    )
    assert response.status_code == 400
    assert resume_bucket.files == {}


def test_seeker_onboarding_for_seekers_only(client):
    poster = make_record("poster@b.com", role="job_poster")
    response = client.post(
        "/api/seeker/onboarding", data=SEEKER_FORM, files={"resume": PDF}, headers=auth_header(poster)
    )
    assert response.status_code == 403


# ------------------------------------------------------------
# PUT /referrer/onboarding
# ------------------------------------------------------------

def test_referrer_onboarding_completes(client):
    referrer = make_record("ref@b.com", role="job_referrer", onboardingStatus="not_started")
    response = client.put("/api/referrer/onboarding", json=REFERRER_BODY, headers=auth_header(referrer))

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["onboardingStatus"] == "completed"
    assert user["referrerDetails"]["mobileNumber"] == "98765 43210"
    assert user["workDetails"]["companyName"] == "Acme"

    stored = RecordStore("referrers").find_by_email("ref@b.com")
    assert stored["referrerDetails"]["personalEmail"] == "ravi@home.com"
    assert stored["milan"] == "Milan A"


def test_referrer_onboarding_rejects_bad_mobile(client):
    referrer = make_record("ref@b.com", role="job_referrer", onboardingStatus="not_started")
    response = client.put(
        "/api/referrer/onboarding",
        json={**REFERRER_BODY, "mobileNumber": "123"},
        headers=auth_header(referrer)
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "mobileNumber"
    assert RecordStore("referrers").find_by_email("ref@b.com")["onboardingStatus"] == "not_started"


def test_referrer_onboarding_for_referrers_only(client):
    seeker = make_record("seeker@b.com")
    response = client.put("/api/referrer/onboarding", json=REFERRER_BODY, headers=auth_header(seeker))
    assert response.status_code == 403


# ------------------------------------------------------------
# GET /referrer/referral-codes
# ------------------------------------------------------------

def issue(email, issuer_id, expires_in=timedelta(days=1), is_used=False):
    return ReferralCodeStore().insert({
        "code": email[:8].ljust(8, "x"),
        "candidateEmail": email,
        "expiresAt": utcnow() + expires_in,
        "isUsed": is_used,
        "usedAt": None,
        "generatedByAdminId": issuer_id,
        "generatedByAdminUsername": "someone",
    })


def test_referrer_sees_only_own_codes(client):
    referrer = make_record("ref@b.com", role="job_referrer")
    other = make_record("other@b.com", role="job_referrer")
    issue("mine@b.com", str(referrer["_id"]))
    issue("used@b.com", str(referrer["_id"]), is_used=True)
    issue("theirs@b.com", str(other["_id"]))

    response = client.get("/api/referrer/referral-codes", headers=auth_header(referrer))

    assert response.status_code == 200
    codes = response.json()["referralCodes"]
    assert sorted(code["candidateEmail"] for code in codes) == ["mine@b.com", "used@b.com"]


def test_referrer_codes_filter_by_status(client):
    referrer = make_record("ref@b.com", role="job_referrer")
    issue("mine@b.com", str(referrer["_id"]))
    issue("used@b.com", str(referrer["_id"]), is_used=True)

    response = client.get(
        "/api/referrer/referral-codes",
        params={"status": "used and valid"},
        headers=auth_header(referrer)
    )

    codes = response.json()["referralCodes"]
    assert [code["candidateEmail"] for code in codes] == ["used@b.com"]
    assert codes[0]["status"] == "used and valid"


def test_referrer_codes_for_referrers_only(client):
    seeker = make_record("seeker@b.com")
    response = client.get("/api/referrer/referral-codes", headers=auth_header(seeker))
    assert response.status_code == 403
