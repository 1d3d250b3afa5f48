import pytest
from datetime import datetime, timedelta, timezone
from fastapi import status

from portal.models.user_induction import InductionStatus, UserInduction


def _iso(value):
    return value.isoformat()


def test_assign_single_induction(client, db_session, mailer, manager_user, staff_user, induction, auth_headers):
    """Assigning without dates leaves the record assigned with no completion."""
    response = client.post(
        "/api/user-inductions/assign",
        json={"userId": staff_user.id, "inductionId": induction.id},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["emailResult"]["success"] is True

    record = db_session.query(UserInduction).filter(UserInduction.id == data["userInductionId"]).one()
    assert record.status == InductionStatus.assigned
    assert record.completed_at is None
    assert record.due_date is None
    assert mailer.subjects() == ["You have been assigned a new induction: Food Safety"]


def test_assign_keeps_dates(client, db_session, manager_user, staff_user, induction, auth_headers):
    due = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)
    available = datetime(2030, 5, 1, 8, 0, tzinfo=timezone.utc)
    response = client.post(
        "/api/user-inductions/assign",
        json={"userId": staff_user.id, "inductionId": induction.id, "dueDate": _iso(due), "availableFrom": _iso(available)},
        headers=auth_headers(manager_user),
    )
    record = db_session.query(UserInduction).filter(UserInduction.id == response.json()["userInductionId"]).one()
    assert record.due_date.replace(tzinfo=timezone.utc) == due
    assert record.available_from.replace(tzinfo=timezone.utc) == available


def test_assign_requires_ids(client, manager_user, auth_headers):
    response = client.post("/api/user-inductions/assign", json={"userId": 1}, headers=auth_headers(manager_user))
    assert response.status_code == 400
    assert response.json()["message"] == "User ID and Induction ID are required"


def test_assign_unknown_induction(client, manager_user, staff_user, auth_headers):
    response = client.post(
        "/api/user-inductions/assign",
        json={"userId": staff_user.id, "inductionId": 9999},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 404


def test_assign_succeeds_when_email_fails(client, db_session, mailer, manager_user, staff_user, induction, auth_headers):
    mailer.fail = True
    response = client.post(
        "/api/user-inductions/assign",
        json={"userId": staff_user.id, "inductionId": induction.id},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["emailResult"]["success"] is False
    assert db_session.query(UserInduction).count() == 1


def test_batch_assignment_reports_each_item(client, db_session, mailer, manager_user, staff_user, induction, auth_headers):
    response = client.post(
        "/api/user-inductions/assign",
        json={
            "userId": staff_user.id,
            "assignments": [
                {"inductionId": induction.id, "dueDate": "2030-01-01T00:00:00+00:00"},
                {"inductionId": 424242},
                {},
            ],
        },
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["totalAssigned"] == 1
    assert [item["success"] for item in data["results"]] == [True, False, False]
    assert data["results"][2]["inductionId"] == "unknown"
    assert mailer.subjects() == ["You have been assigned 1 new induction"]


def test_batch_with_nothing_assigned_sends_no_email(client, mailer, manager_user, staff_user, auth_headers):
    response = client.post(
        "/api/user-inductions/assign",
        json={"userId": staff_user.id, "assignments": [{"inductionId": 424242}]},
        headers=auth_headers(manager_user),
    )
    data = response.json()
    assert data["totalAssigned"] == 0
    assert data["emailResult"] == {"success": False, "message": "No email sent"}
    assert mailer.sent == []


def test_staff_cannot_assign(client, staff_user, induction, auth_headers):
    response = client.post(
        "/api/user-inductions/assign",
        json={"userId": staff_user.id, "inductionId": induction.id},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403


def test_start_sends_no_email(client, db_session, mailer, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction)
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "in_progress"},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["statusUpdate"] == "in_progress"
    assert "startedAt" in data["changes"]
    assert data["emailResult"]["success"] is False
    assert mailer.sent == []
    db_session.refresh(record)
    assert record.started_at is not None


def test_completion_sends_congratulations(client, db_session, mailer, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, status=InductionStatus.in_progress)
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "complete", "answers": {"q1": "a"}},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 200
    assert response.json()["emailResult"]["success"] is True
    assert mailer.subjects() == ["Congratulations! You've completed Food Safety"]
    db_session.refresh(record)
    assert record.status == InductionStatus.complete
    assert record.completed_at is not None
    assert record.answers == {"q1": "a"}


def test_reopening_completed_induction_is_rejected(client, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, status=InductionStatus.complete,
                             completed_at=datetime.now(timezone.utc))
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "in_progress"},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "INVALID_STATUS_TRANSITION"


@pytest.mark.parametrize("due_date", [None, datetime(2030, 1, 1, tzinfo=timezone.utc)])
def test_staff_cannot_mark_overdue_before_due_date(client, db_session, mailer, staff_user, induction,
                                                   make_assignment, auth_headers, due_date):
    record = make_assignment(staff_user, induction, due_date=due_date)
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "overdue"},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "INVALID_STATUS_TRANSITION"
    db_session.refresh(record)
    assert record.status == InductionStatus.assigned
    assert mailer.sent == []


def test_manager_cannot_mark_overdue_before_due_date(client, mailer, manager_user, staff_user, induction,
                                                     make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, status=InductionStatus.in_progress,
                             due_date=datetime(2030, 1, 1, tzinfo=timezone.utc))
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "overdue"},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 400
    assert mailer.sent == []


def test_overdue_after_due_date_sends_urgent_email(client, mailer, manager_user, staff_user, induction,
                                                   make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, due_date=datetime.now(timezone.utc) - timedelta(days=2))
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "overdue"},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 200
    assert response.json()["statusUpdate"] == "overdue"
    assert mailer.subjects() == ["⚠️ OVERDUE: Action required for Food Safety"]


def test_due_date_change_notifies(client, mailer, manager_user, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, due_date=datetime(2030, 1, 1, tzinfo=timezone.utc))
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"dueDate": "2030-02-01T00:00:00+00:00"},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 200
    assert response.json()["changes"] == ["dueDate"]
    assert mailer.subjects() == ["Updates to your induction: Food Safety"]
    assert "1 February 2030" in mailer.sent[0]["body"]


def test_blank_due_date_is_ignored(client, mailer, manager_user, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, due_date=datetime(2030, 1, 1, tzinfo=timezone.utc))
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"dueDate": ""},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == 200
    assert response.json()["changes"] == []
    assert mailer.sent == []


def test_staff_cannot_change_due_date(client, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction)
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"dueDate": "2030-02-01T00:00:00+00:00"},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403


def test_staff_cannot_touch_other_users_records(client, staff_user, other_staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(other_staff_user, induction)
    assert client.get(f"/api/user-inductions/{record.id}", headers=auth_headers(staff_user)).status_code == 403
    response = client.put(
        f"/api/user-inductions/{record.id}",
        json={"status": "in_progress"},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403


def test_list_user_inductions(client, staff_user, induction, make_assignment, auth_headers):
    make_assignment(staff_user, induction)
    response = client.get(f"/api/user-inductions/user/{staff_user.id}", headers=auth_headers(staff_user))
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["inductionName"] == "Food Safety"
    assert data[0]["induction"]["name"] == "Food Safety"


def test_by_induction_and_stats(client, manager_user, staff_user, other_staff_user, induction, make_assignment, auth_headers):
    make_assignment(staff_user, induction, status=InductionStatus.in_progress)
    make_assignment(other_staff_user, induction, status=InductionStatus.complete,
                    started_at=datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
                    completed_at=datetime(2025, 1, 1, 9, 30, tzinfo=timezone.utc))
    headers = auth_headers(manager_user)

    listing = client.get("/api/user-inductions/by-induction", params={"inductionId": induction.id}, headers=headers)
    assert listing.status_code == 200
    assert {item["user"]["email"] for item in listing.json()} == {staff_user.email, other_staff_user.email}

    stats = client.get("/api/user-inductions/stats", params={"inductionId": induction.id}, headers=headers).json()
    assert stats == {"total": 2, "assigned": 0, "inProgress": 1, "completed": 1, "overdue": 0}

    detailed = client.get("/api/user-inductions/results-stats", params={"inductionId": induction.id}, headers=headers).json()
    assert detailed["averageCompletionTime"] == 30
    assert detailed["completionTimeline"] == [{"date": "2025-01-01", "count": 1}]


def test_results_for_induction(client, manager_user, staff_user, induction, make_assignment, auth_headers):
    make_assignment(staff_user, induction)
    response = client.get(f"/api/user-inductions/results/{induction.id}", headers=auth_headers(manager_user))
    assert response.status_code == 200
    data = response.json()
    assert data["induction"]["id"] == induction.id
    assert len(data["assignments"]) == 1
    assert data["stats"]["total"] == 1


def test_delete_requires_admin(client, db_session, manager_user, admin_user, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction)
    assert client.delete(f"/api/user-inductions/{record.id}", headers=auth_headers(manager_user)).status_code == 403
    response = client.delete(f"/api/user-inductions/{record.id}", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert db_session.query(UserInduction).count() == 0


def test_reminder_counts_sends(client, db_session, mailer, manager_user, staff_user, induction, make_assignment, auth_headers):
    record = make_assignment(staff_user, induction, due_date=datetime.now(timezone.utc) + timedelta(days=3))
    response = client.post(f"/api/user-inductions/{record.id}/reminder", headers=auth_headers(manager_user))
    assert response.status_code == 200
    assert response.json()["message"] == "Reminder email sent successfully"
    assert mailer.subjects() == ["Reminder: Complete your Food Safety induction"]
    db_session.refresh(record)
    assert record.reminder_count == 1
    assert record.reminder_sent_at is not None


def test_reminder_fails_when_mail_is_down(client, db_session, mailer, manager_user, staff_user, induction, make_assignment, auth_headers):
    mailer.fail = True
    record = make_assignment(staff_user, induction)
    response = client.post(f"/api/user-inductions/{record.id}/reminder", headers=auth_headers(manager_user))
    assert response.status_code == 500
    assert response.json()["errors"][0]["code"] == "REMINDER_FAILED"
    db_session.refresh(record)
    assert record.reminder_count == 0
