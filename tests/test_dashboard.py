import pytest

from schoolhub.extensions import db
from schoolhub.models import Announcement
from schoolhub.blueprints.dashboard.routes import greeting


@pytest.mark.parametrize("hour, text", [
    (0, "Good morning"), (11, "Good morning"), (12, "Good afternoon"),
    (17, "Good afternoon"), (18, "Good evening"), (23, "Good evening"),
])
def test_greeting(hour, text):
    assert greeting(hour) == text


def test_dashboard_requires_login(client):
    resp = client.get("/")
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]


def test_admin_cards_and_actions(client, login):
    body = login("admin").data.decode()
    assert "Ada!" in body
    assert '<h3>Total students</h3><p class="value">2</p>' in body
    assert '<h3>Total teachers</h3><p class="value">2</p>' in body
    assert '<h3>Subjects</h3><p class="value">2</p>' in body
    assert "Register user" in body


def test_coord_cards_have_no_subject_count(client, login):
    body = login("coord").data.decode()
    assert '<h3>Total classes</h3><p class="value">2</p>' in body
    assert "registered subjects" not in body
    assert "Manage classes" in body


def test_teacher_cards(client, login):
    body = login("teacher").data.decode()
    assert '<h3>My classes</h3><p class="value">1</p>' in body
    assert '<h3>My students</h3><p class="value">2</p>' in body
    assert "Record grades" in body


def test_student_cards(client, login):
    body = login("student").data.decode()
    assert "Sam!" in body
    assert '<h3>My subjects</h3><p class="value">1</p>' in body
    assert '<h3>Overall average</h3><p class="value">0.0</p>' in body
    assert "New announcement" not in body


def post(client, title, class_id=None):
    return client.post("/announcements", data={
        "title": title, "content": "Details", "target_class_id": class_id or "",
    }, follow_redirects=True)


def test_announcement_targeting(client, login, ids):
    login("admin")
    assert b"Announcement posted" in post(client, "School trip").data
    post(client, "Only 9B", ids["other_class"])
    login("teacher")
    post(client, "Math test on Friday", ids["class"])

    body = login("student").data.decode()
    assert "School trip" in body
    assert "Math test on Friday" in body
    assert "Only 9B" not in body

    body = login("coord").data.decode()
    assert "Math test on Friday" in body
    assert "Only 9B" not in body

    body = login("admin").data.decode()
    assert "Only 9B" in body


def test_teacher_posting_rules(app, client, login, ids):
    login("teacher")
    resp = post(client, "Everyone!")
    assert b"Teachers can only post to their own classes" in resp.data
    login("teacher2")
    assert post(client, "Hello", ids["class"]).status_code == 403
    with app.app_context():
        assert Announcement.query.count() == 0


def test_announcement_requires_title_and_content(client, login):
    login("admin")
    resp = client.post("/announcements", data={"title": "", "content": "x"},
                       follow_redirects=True)
    assert b"Title and content are required" in resp.data


def test_student_cannot_post(client, login, ids):
    login("student")
    assert client.post("/announcements", data={"title": "a", "content": "b"}).status_code == 403


def test_delete_announcement(app, client, login, ids):
    with app.app_context():
        a = Announcement(author_id=ids["teacher"], title="Quiz", content="Tomorrow",
                         target_class_id=ids["class"])
        db.session.add(a)
        db.session.commit()
        aid = a.id
    login("teacher2")
    assert client.post(f"/announcements/{aid}/delete").status_code == 403
    login("teacher")
    resp = client.post(f"/announcements/{aid}/delete", follow_redirects=True)
    assert b"Announcement deleted" in resp.data
    with app.app_context():
        assert db.session.get(Announcement, aid) is None
