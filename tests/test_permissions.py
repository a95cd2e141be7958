import pytest

from schoolhub.models import User, SchoolClass, TeacherAllocation, Student
from schoolhub.permissions import (can, menu_for, quick_actions_for, role_label,
                                   is_coord_for_class, is_teacher_for_class,
                                   is_student_in_class, can_view_class)


def test_permission_matrix():
    assert can("admin", "manage_users")
    assert not can("coord", "manage_users")
    assert can("coord", "manage_classes")
    assert not can("teacher", "manage_classes")
    assert can("teacher", "record_grades")
    assert not can("student", "record_grades")
    assert can("student", "view_own_grades")
    assert not can("teacher", "view_reports")
    assert not can("admin", "no_such_action")


def test_menus_follow_roles():
    admin = [endpoint for endpoint, _ in menu_for("admin")]
    assert admin[0] == "dashboard.home"
    assert "users.index" in admin and "reports.index" in admin
    coord = [endpoint for endpoint, _ in menu_for("coord")]
    assert "users.index" not in coord and "schedule.index" in coord
    student = [endpoint for endpoint, _ in menu_for("student")]
    assert student == ["dashboard.home", "grades.my_grades", "schedule.index", "subjects.index"]
    assert len(quick_actions_for("teacher")) == 3
    assert quick_actions_for("nobody") == []
    assert menu_for("nobody") == []
    assert role_label("coord") == "Coordinator"


def test_row_level_predicates(app):
    with app.app_context():
        cls = SchoolClass(id=10, name="7C", year=2025, coord_id=3)
        coord = User(id=3, role="coord")
        other_coord = User(id=4, role="coord")
        teacher = User(id=5, role="teacher")
        teacher.allocations.append(TeacherAllocation(class_id=10, subject_id=2))
        student = User(id=6, role="student")
        student.student = Student(class_id=10, ra="X")

        assert is_coord_for_class(coord, cls)
        assert not is_coord_for_class(other_coord, cls)
        assert is_teacher_for_class(teacher, cls)
        assert is_teacher_for_class(teacher, cls, subject_id=2)
        assert not is_teacher_for_class(teacher, cls, subject_id=3)
        assert is_student_in_class(student, cls)
        assert can_view_class(other_coord, cls)
        assert not can_view_class(User(id=7, role="teacher"), cls)


@pytest.mark.parametrize("who,path", [
    ("student", "/users/"),
    ("coord", "/users/"),
    ("teacher", "/reports/"),
    ("student", "/students/"),
    ("student", "/classes/"),
    ("teacher", "/grades/me"),
])
def test_forbidden_pages(client, login, who, path):
    login(who)
    resp = client.get(path)
    assert resp.status_code == 403
    assert b"Access denied" in resp.data


@pytest.mark.parametrize("who,path", [
    ("admin", "/users/"),
    ("coord", "/reports/"),
    ("teacher", "/grades/"),
    ("student", "/grades/me"),
    ("student", "/schedule/"),
    ("student", "/subjects/"),
])
def test_allowed_pages(client, login, who, path):
    login(who)
    assert client.get(path).status_code == 200


def test_sidebar_shows_role_menu(client, login):
    resp = login("coord")
    assert b'href="/reports/"' in resp.data
    assert b'href="/users/"' not in resp.data
