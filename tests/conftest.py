from datetime import date

import pytest

from schoolhub import create_app
from schoolhub.extensions import db
from schoolhub.accounts import create_account, place_in_class
from schoolhub.models import SchoolClass, Subject, TeacherAllocation

PASSWORDS = {
    "admin": "admin-pass",
    "coord": "coord-pass",
    "teacher": "teacher-pass",
    "teacher2": "teacher2-pass",
    "student": "student-pass",
    "student2": "student-pass",
}


def seed():
    """One account per role plus a class with an allocated teacher."""
    admin = create_account("Ada Admin", "admin@school.test", "admin", PASSWORDS["admin"])
    coord = create_account("Carla Coord", "coord@school.test", "coord", PASSWORDS["coord"])
    teacher = create_account("Tom Teacher", "teacher@school.test", "teacher", PASSWORDS["teacher"])
    teacher2 = create_account("Tina Other", "teacher2@school.test", "teacher", PASSWORDS["teacher2"])
    student = create_account("Sam Student", "student@school.test", "student", PASSWORDS["student"])
    student2 = create_account("Bea Student", "student2@school.test", "student", PASSWORDS["student2"])

    cls = SchoolClass(name="8A", year=2025, coord=coord)
    other = SchoolClass(name="9B", year=2024)
    math = Subject(name="Mathematics", workload_hours=4)
    history = Subject(name="History", workload_hours=2)
    db.session.add_all([cls, other, math, history])
    db.session.flush()

    student.student.ra = "RA001"
    student2.student.ra = "RA002"
    place_in_class(student.student, cls.id)
    place_in_class(student2.student, cls.id)
    db.session.add(TeacherAllocation(teacher=teacher, school_class=cls, subject=math))
    db.session.commit()
    return {
        "admin": admin.id, "coord": coord.id, "teacher": teacher.id,
        "teacher2": teacher2.id, "student": student.id, "student2": student2.id,
        "student_row": student.student.id, "student2_row": student2.student.id,
        "class": cls.id, "other_class": other.id,
        "math": math.id, "history": history.id,
    }


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    with app.app_context():
        db.create_all()
        app.config["SEED"] = seed()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ids(app):
    return app.config["SEED"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def do_login(who, password=None):
        client.get("/auth/logout")
        email = f"{who}@school.test"
        return client.post("/auth/login", data={
            "email": email,
            "password": password or PASSWORDS[who],
        }, follow_redirects=True)
    return do_login


@pytest.fixture
def today():
    return date.today()
