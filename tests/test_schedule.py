from datetime import time

import pytest

from schoolhub.extensions import db
from schoolhub.models import Schedule
from schoolhub.blueprints.schedule.routes import group_by_day


def entry_form(ids, **overrides):
    data = {
        "class_id": ids["class"], "subject_id": ids["math"], "teacher_id": ids["teacher"],
        "day_of_week": "1", "start": "08:00", "end": "08:50", "room": "R1",
    }
    data.update(overrides)
    return data


def test_create_entry(app, client, login, ids):
    login("coord")
    resp = client.post("/schedule/", data=entry_form(ids), follow_redirects=True)
    assert b"Schedule entry added" in resp.data
    assert b"08:00-08:50" in resp.data
    with app.app_context():
        e = Schedule.query.one()
        assert (e.day_of_week, e.start_time, e.end_time, e.room) == (1, time(8, 0), time(8, 50), "R1")


@pytest.mark.parametrize("overrides, message", [
    ({"teacher_id": ""}, b"Class, subject and teacher are required"),
    ({"class_id": "999"}, b"The class, subject or teacher does not exist"),
    ({"day_of_week": "6"}, b"Day must be a school day (Monday to Friday)"),
    ({"start": "8h"}, b"Time format must be HH:MM"),
    ({"start": "09:00", "end": "08:00"}, b"End time must be later than start time"),
    ({"start": "09:00", "end": "09:00"}, b"End time must be later than start time"),
])
def test_entry_validation(app, client, login, ids, overrides, message):
    login("admin")
    resp = client.post("/schedule/", data=entry_form(ids, **overrides), follow_redirects=True)
    assert message in resp.data
    with app.app_context():
        assert Schedule.query.count() == 0


def test_student_account_is_not_a_teacher(client, login, ids):
    login("admin")
    resp = client.post("/schedule/", data=entry_form(ids, teacher_id=ids["student"]),
                       follow_redirects=True)
    assert b"The class, subject or teacher does not exist" in resp.data


def test_class_conflict_is_rejected(app, client, login, ids):
    login("coord")
    client.post("/schedule/", data=entry_form(ids))
    resp = client.post("/schedule/", data=entry_form(
        ids, teacher_id=ids["teacher2"], subject_id=ids["history"], start="08:30", end="09:20"),
        follow_redirects=True)
    assert b"Conflicts with Mathematics for the same class: Monday 08:00-08:50" in resp.data
    with app.app_context():
        assert Schedule.query.count() == 1


def test_teacher_conflict_across_classes(app, client, login, ids):
    login("coord")
    client.post("/schedule/", data=entry_form(ids))
    resp = client.post("/schedule/", data=entry_form(
        ids, class_id=ids["other_class"], start="08:10", end="08:40"), follow_redirects=True)
    assert b"for the same teacher" in resp.data
    with app.app_context():
        assert Schedule.query.count() == 1


def test_adjacent_and_other_day_entries_are_allowed(app, client, login, ids):
    login("coord")
    client.post("/schedule/", data=entry_form(ids))
    client.post("/schedule/", data=entry_form(ids, start="08:50", end="09:40"))
    client.post("/schedule/", data=entry_form(ids, day_of_week="2"))
    with app.app_context():
        assert Schedule.query.count() == 3


def test_delete_entry(app, client, login, ids):
    login("coord")
    client.post("/schedule/", data=entry_form(ids))
    with app.app_context():
        eid = Schedule.query.one().id
    resp = client.post(f"/schedule/{eid}/delete", follow_redirects=True)
    assert b"Schedule entry deleted" in resp.data


def test_only_staff_manage_schedule(client, login, ids):
    login("teacher")
    assert client.post("/schedule/", data=entry_form(ids)).status_code == 403


def add_entries(app, ids):
    with app.app_context():
        db.session.add_all([
            Schedule(class_id=ids["class"], subject_id=ids["math"], teacher_id=ids["teacher"],
                     day_of_week=3, start_time=time(10, 0), end_time=time(10, 50)),
            Schedule(class_id=ids["other_class"], subject_id=ids["history"],
                     teacher_id=ids["teacher2"], day_of_week=3,
                     start_time=time(13, 0), end_time=time(13, 50)),
        ])
        db.session.commit()


def test_student_sees_own_class_only(app, client, login, ids):
    add_entries(app, ids)
    login("student")
    body = client.get("/schedule/").data.decode()
    assert "My schedule" in body
    assert "10:00-10:50" in body
    assert "13:00-13:50" not in body
    assert "1 lessons per week" in body


def test_teacher_sees_own_entries(app, client, login, ids):
    add_entries(app, ids)
    login("teacher2")
    body = client.get("/schedule/").data.decode()
    assert "13:00-13:50" in body
    assert "10:00-10:50" not in body


def test_staff_filter_by_class(app, client, login, ids):
    add_entries(app, ids)
    login("admin")
    body = client.get(f"/schedule/?class_id={ids['other_class']}").data.decode()
    assert "13:00-13:50" in body
    assert "10:00-10:50" not in body
    body = client.get("/schedule/").data.decode()
    assert "2 lessons per week" in body


def test_group_by_day_always_has_school_days():
    week = group_by_day([])
    assert list(week) == [1, 2, 3, 4, 5]
