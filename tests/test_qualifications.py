import pytest
from datetime import datetime, timedelta, timezone

from portal.models.qualification import (
    QualificationRequest, QualificationRequestStatus, QualificationStatus, UserQualification
)
from portal.services import qualifications


NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_qualification(db_session):
    def _make(user, expiry_date=None, **fields):
        qualification = UserQualification(
            user_id=user.id,
            qualification_type="First Aid",
            qualification_name="Workplace First Aid",
            expiry_date=expiry_date,
            **fields,
        )
        db_session.add(qualification)
        db_session.commit()
        return qualification
    return _make


@pytest.mark.parametrize("offset,sent,expected", [
    (timedelta(days=-1), {}, "expired"),
    (timedelta(days=-1), {"expired": True}, None),
    (timedelta(days=10), {}, "oneMonth"),
    (timedelta(days=10), {"oneMonth": True}, None),
    (timedelta(days=45), {}, "twoMonths"),
    (timedelta(days=45), {"twoMonths": True}, None),
    (timedelta(days=90), {}, None),
])
def test_classify_expiry(offset, sent, expected):
    assert qualifications.classify_expiry(NOW + offset, sent, NOW) == expected


def test_expiry_sweep_sends_each_reminder_once(db_session, mailer, staff_user, make_qualification):
    expired = make_qualification(staff_user, NOW - timedelta(days=2))
    soon = make_qualification(staff_user, NOW + timedelta(days=20))
    later = make_qualification(staff_user, NOW + timedelta(days=50))
    fine = make_qualification(staff_user, NOW + timedelta(days=400))
    no_expiry = make_qualification(staff_user)

    result = qualifications.sweep_qualification_expiries(db_session, mailer, now=NOW)
    assert result["remindersSent"] == 3
    assert result["message"] == "3 qualification expiry reminders sent"
    assert {item["reminderType"] for item in result["processedQualifications"]} == {"expired", "oneMonth", "twoMonths"}

    assert expired.status == QualificationStatus.expired
    assert expired.reminders_sent["expired"] is True
    assert soon.status == QualificationStatus.expiring_soon
    assert later.reminders_sent["twoMonths"] is True
    assert fine.status == QualificationStatus.active
    assert no_expiry.status == QualificationStatus.active
    assert all("kitchen@example.com" in message["cc"] for message in mailer.sent)

    again = qualifications.sweep_qualification_expiries(db_session, mailer, now=NOW)
    assert again["remindersSent"] == 0
    assert len(mailer.sent) == 3


def test_upload_qualification(client, db_session, storage, staff_user, auth_headers):
    response = client.post(
        "/api/user-qualifications/upload",
        data={
            "qualificationType": "First Aid",
            "qualificationName": "Workplace First Aid",
            "issuer": "Red Cross",
            "expiryDate": "2030-01-01T00:00:00+00:00",
        },
        files={"file": ("first aid.pdf", b"%PDF-1.4 test", "application/pdf")},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 201
    qualification = db_session.query(UserQualification).one()
    assert qualification.user_id == staff_user.id
    assert qualification.file_name == "first aid.pdf"
    assert qualification.object_name in storage.objects
    assert qualification.object_name.startswith(f"qualifications/{staff_user.id}/")
    assert qualification.reminders_sent == {"twoMonths": False, "oneMonth": False, "expired": False}

    listing = client.get("/api/user-qualifications/", headers=auth_headers(staff_user)).json()
    assert listing["qualifications"][0]["issuer"] == "Red Cross"


def test_upload_rejects_bad_date(client, staff_user, auth_headers):
    response = client.post(
        "/api/user-qualifications/upload",
        data={"qualificationType": "First Aid", "qualificationName": "FA", "expiryDate": "next year"},
        files={"file": ("fa.pdf", b"data", "application/pdf")},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 400


def test_upload_fulfils_pending_request(client, db_session, manager_user, staff_user, auth_headers):
    db_session.add(QualificationRequest(
        user_id=staff_user.id, requested_by=manager_user.id, qualification_type="First Aid",
        status=QualificationRequestStatus.pending,
    ))
    db_session.commit()
    client.post(
        "/api/user-qualifications/upload",
        data={"qualificationType": "First Aid", "qualificationName": "FA"},
        files={"file": ("fa.pdf", b"data", "application/pdf")},
        headers=auth_headers(staff_user),
    )
    db_session.expire_all()
    assert db_session.query(QualificationRequest).one().status == QualificationRequestStatus.fulfilled


def test_staff_cannot_upload_for_someone_else(client, staff_user, other_staff_user, auth_headers):
    response = client.post(
        "/api/user-qualifications/upload",
        data={"qualificationType": "First Aid", "qualificationName": "FA", "userId": str(other_staff_user.id)},
        files={"file": ("fa.pdf", b"data", "application/pdf")},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403


def test_replacing_file_removes_old_object(client, db_session, storage, staff_user, make_qualification, auth_headers):
    qualification = make_qualification(staff_user, NOW + timedelta(days=10), object_name="old/object.pdf",
                                       reminders_sent={"twoMonths": True, "oneMonth": True, "expired": False},
                                       status=QualificationStatus.expiring_soon)
    response = client.put(
        f"/api/user-qualifications/{qualification.id}",
        data={"expiryDate": "2031-01-01T00:00:00+00:00"},
        files={"file": ("renewed.pdf", b"new", "application/pdf")},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 200
    assert storage.deleted == ["old/object.pdf"]
    db_session.refresh(qualification)
    assert qualification.file_name == "renewed.pdf"
    assert qualification.status == QualificationStatus.active
    assert qualification.reminders_sent["oneMonth"] is False


def test_delete_qualification(client, db_session, storage, staff_user, make_qualification, auth_headers):
    qualification = make_qualification(staff_user, object_name="q/file.pdf")
    response = client.delete(f"/api/user-qualifications/{qualification.id}", headers=auth_headers(staff_user))
    assert response.status_code == 200
    assert storage.deleted == ["q/file.pdf"]
    assert db_session.query(UserQualification).count() == 0


def test_manager_lists_all_with_users(client, manager_user, staff_user, make_qualification, auth_headers):
    make_qualification(staff_user, datetime.now(timezone.utc) - timedelta(days=1))
    make_qualification(staff_user, datetime.now(timezone.utc) + timedelta(days=300))
    response = client.get("/api/user-qualifications/all", params={"expiryFilter": "expired"},
                          headers=auth_headers(manager_user))
    assert response.status_code == 200
    items = response.json()["qualifications"]
    assert len(items) == 1
    assert items[0]["user"]["email"] == staff_user.email


def test_request_qualification_emails_user(client, db_session, mailer, manager_user, staff_user, auth_headers):
    response = client.post(
        "/api/user-qualifications/request",
        json={"userId": staff_user.id, "qualificationType": "Forklift Licence"},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 201
    assert response.json()["emailResult"]["success"] is True
    assert mailer.subjects() == ["Request to upload qualification: Forklift Licence"]
    request = db_session.query(QualificationRequest).one()
    assert request.message == "Please upload your Forklift Licence"
    assert request.requested_by == manager_user.id

    own = client.get("/api/user-qualifications/requests", headers=auth_headers(staff_user)).json()
    assert own["requests"][0]["qualificationType"] == "Forklift Licence"


def test_staff_cannot_request_qualifications(client, staff_user, auth_headers):
    response = client.post(
        "/api/user-qualifications/request",
        json={"userId": staff_user.id, "qualificationType": "Forklift Licence"},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403


def test_upload_size_limit(client, staff_user, auth_headers, monkeypatch):
    from portal.core.config import settings
    monkeypatch.setattr(settings, "max_upload_bytes", 4)
    response = client.post(
        "/api/files/upload",
        files={"file": ("big.bin", b"12345", "application/octet-stream")},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 413


def test_generic_file_upload_and_signed_url(client, storage, staff_user, auth_headers):
    response = client.post(
        "/api/files/upload",
        files={"file": ("logo.png", b"png-bytes", "image/png")},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 200
    object_name = response.json()["objectName"]
    assert storage.objects[object_name] == b"png-bytes"

    signed = client.get("/api/files/signed-url", params={"objectName": object_name}, headers=auth_headers(staff_user))
    assert object_name in signed.json()["url"]
