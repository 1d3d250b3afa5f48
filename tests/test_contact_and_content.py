import pytest
from fastapi import status

from portal.models.contact_submission import ContactStatus, ContactSubmission


def _contact_payload(**overrides):
    payload = {
        "fullName": "Pat Public",
        "email": "pat@example.org",
        "subject": "Catering enquiry",
        "message": "Do you cater weddings?\nThanks",
    }
    payload.update(overrides)
    return payload


def test_public_submission_goes_to_admin_inbox(client, db_session, mailer):
    response = client.post("/api/contact/submit", json=_contact_payload())
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["isLoggedIn"] is False
    assert data["departmentRouted"] is False

    submission = db_session.query(ContactSubmission).one()
    assert submission.status == ContactStatus.new
    assert submission.contact_type is None

    confirmation, notification = mailer.sent
    assert confirmation["to"] == "pat@example.org"
    assert confirmation["subject"] == "Thank you for contacting us: Catering enquiry"
    assert notification["to"] == "admin-inbox@example.com"
    assert notification["reply_to"] == "pat@example.org"


def test_public_submission_ignores_requested_department(client, db_session, department):
    response = client.post("/api/contact/submit", json=_contact_payload(contactType=department.id))
    assert response.json()["departmentRouted"] is False
    assert db_session.query(ContactSubmission).one().contact_type is None


def test_staff_submission_routes_to_department(client, mailer, staff_user, auth_headers):
    response = client.post("/api/contact/submit", json=_contact_payload(), headers=auth_headers(staff_user))
    data = response.json()
    assert data["isLoggedIn"] is True
    assert data["departmentRouted"] is True

    notification = mailer.sent[-1]
    assert notification["to"] == "kitchen@example.com"
    assert "admin-inbox@example.com" in notification["cc"]
    assert "Staff (Logged In)" in notification["body"]


def test_feedback_skips_confirmation(client, db_session, mailer):
    response = client.post(
        "/api/contact/submit",
        json=_contact_payload(formType="feedback", subject="Induction feedback", feedbackData={"rating": 5}),
    )
    assert response.json()["formType"] == "feedback"
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["subject"] == "Induction feedback"
    assert db_session.query(ContactSubmission).one().feedback_data == {"rating": 5}


def test_submission_saved_even_if_mail_fails(client, db_session, mailer):
    mailer.fail = True
    response = client.post("/api/contact/submit", json=_contact_payload())
    assert response.status_code == 201
    assert db_session.query(ContactSubmission).count() == 1


def test_missing_fields_rejected(client):
    response = client.post("/api/contact/submit", json={"fullName": "Pat", "email": "pat@example.org"})
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_manage_submissions(client, db_session, manager_user, auth_headers):
    client.post("/api/contact/submit", json=_contact_payload())
    submission_id = db_session.query(ContactSubmission).one().id
    headers = auth_headers(manager_user)

    listing = client.get("/api/contact/", headers=headers).json()
    assert listing[0]["subject"] == "Catering enquiry"

    response = client.patch(f"/api/contact/{submission_id}/status", json={"status": "resolved"}, headers=headers)
    assert response.status_code == 200
    assert client.get(f"/api/contact/{submission_id}", headers=headers).json()["status"] == "resolved"

    assert client.delete(f"/api/contact/{submission_id}", headers=headers).status_code == 200
    assert client.get(f"/api/contact/{submission_id}", headers=headers).status_code == 404


def test_staff_cannot_list_submissions(client, staff_user, auth_headers):
    assert client.get("/api/contact/", headers=auth_headers(staff_user)).status_code == 403


def test_content_defaults_and_update(client, manager_user, auth_headers):
    content = client.get("/api/content/").json()
    assert set(content) >= {"about", "contact"}

    response = client.put(
        "/api/content/",
        json={"sections": {"about": "We cater anywhere for anyone."}},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 200
    content = client.get("/api/content/").json()
    assert content["about"]["text"] == "We cater anywhere for anyone."
    assert content["contact"]["text"]


def test_content_update_requires_manager(client, staff_user, auth_headers):
    response = client.put("/api/content/", json={"sections": {"about": "x"}}, headers=auth_headers(staff_user))
    assert response.status_code == 403


def test_email_settings_round_trip(client, db_session, mailer, admin_user, staff_user, induction, auth_headers):
    headers = auth_headers(admin_user)
    defaults = client.get("/api/email-settings/", headers=headers).json()
    assert defaults["defaultReplyTo"]

    response = client.put(
        "/api/email-settings/",
        json={"defaultReplyTo": "hr@example.com", "defaultCc": ["audit@example.com"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["settings"]["defaultCc"] == ["audit@example.com"]

    # Stored settings apply to outgoing notifications
    client.post("/api/user-inductions/assign", json={"userId": staff_user.id, "inductionId": induction.id},
                headers=headers)
    assert mailer.sent[-1]["reply_to"] == "hr@example.com"
    assert mailer.sent[-1]["cc"] == ["audit@example.com"]


def test_email_settings_validate_addresses(client, admin_user, auth_headers):
    response = client.put("/api/email-settings/", json={"defaultCc": ["not-an-email"]}, headers=auth_headers(admin_user))
    assert response.status_code == 422


def test_email_settings_admin_only(client, manager_user, auth_headers):
    assert client.get("/api/email-settings/", headers=auth_headers(manager_user)).status_code == 403
