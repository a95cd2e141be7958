"""Role-permission matrix.

Routes gate themselves with :func:`role_required`; templates ask :func:`can`
so that management buttons are only rendered for roles allowed to use them.
"""
from functools import wraps

from flask import abort
from flask_login import current_user

ROLE_LABELS = {
    "admin": "Administrator",
    "coord": "Coordinator",
    "teacher": "Teacher",
    "student": "Student",
}

STAFF = ("admin", "coord")

PERMISSIONS = {
    "manage_users":        {"admin"},
    "manage_classes":      {"admin", "coord"},
    "manage_students":     {"admin", "coord"},
    "import_students":     {"admin", "coord"},
    "manage_subjects":     {"admin", "coord"},
    "manage_schedules":    {"admin", "coord"},
    "view_reports":        {"admin", "coord"},
    "record_grades":       {"admin", "teacher"},
    "view_own_grades":     {"student"},
    "record_attendance":   {"admin", "teacher"},
    "post_announcements":  {"admin", "coord", "teacher"},
    "record_incidents":    {"admin", "coord", "teacher"},
}

# (endpoint, label) pairs, in sidebar order
MENUS = {
    "admin": [
        ("dashboard.home", "Dashboard"),
        ("users.index", "Users"),
        ("classes.index", "Classes"),
        ("students.index", "Students"),
        ("subjects.index", "Subjects"),
        ("schedule.index", "Schedule"),
        ("reports.index", "Reports"),
    ],
    "coord": [
        ("dashboard.home", "Dashboard"),
        ("classes.index", "Classes"),
        ("students.index", "Students"),
        ("subjects.index", "Subjects"),
        ("schedule.index", "Schedule"),
        ("reports.index", "Reports"),
    ],
    "teacher": [
        ("dashboard.home", "Dashboard"),
        ("classes.index", "My classes"),
        ("grades.index", "Grades"),
        ("grades.attendance", "Attendance"),
        ("schedule.index", "Schedule"),
        ("students.incidents", "Incidents"),
    ],
    "student": [
        ("dashboard.home", "Dashboard"),
        ("grades.my_grades", "Grades"),
        ("schedule.index", "Schedule"),
        ("subjects.index", "Subjects"),
    ],
}

QUICK_ACTIONS = {
    "admin": [
        ("users.index", "Register user", "Add a new member"),
        ("classes.index", "New class", "Create a new class"),
        ("reports.index", "Reports", "See school-wide reports"),
    ],
    "coord": [
        ("classes.index", "Manage classes", "Organize classes"),
        ("students.index", "Register student", "New student"),
        ("schedule.index", "Schedule", "Organize timetables"),
    ],
    "teacher": [
        ("grades.index", "Record grades", "Register assessments"),
        ("classes.index", "My classes", "Classes I teach"),
        ("schedule.index", "Schedule", "My timetable"),
    ],
    "student": [
        ("grades.my_grades", "My grades", "Check assessments"),
        ("schedule.index", "Schedule", "My timetable"),
        ("subjects.index", "Subjects", "My subjects"),
    ],
}


def role_label(role):
    return ROLE_LABELS.get(role, role)


def can(role, action):
    return role in PERMISSIONS.get(action, ())


def menu_for(role):
    return MENUS.get(role, [])


def quick_actions_for(role):
    return QUICK_ACTIONS.get(role, [])


def is_coord_for_class(user, cls):
    return user.role == "coord" and cls.coord_id == user.id


def is_teacher_for_class(user, cls, subject_id=None):
    if user.role != "teacher":
        return False
    return any(a.class_id == cls.id and (subject_id is None or a.subject_id == subject_id)
               for a in user.allocations)


def is_student_in_class(user, cls):
    return user.role == "student" and user.student is not None \
        and user.student.class_id == cls.id


def can_view_class(user, cls):
    if user.role in STAFF:
        return True
    return is_teacher_for_class(user, cls) or is_student_in_class(user, cls)


def role_required(*roles):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated or current_user.role not in roles:
                abort(403)
            return f(*args, **kwargs)
        return wrapper
    return deco
