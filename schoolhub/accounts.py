from .extensions import db
from .models import User, Student, Enrollment
from .utils import generate_ra


def create_account(full_name, email, role, password):
    u = User(full_name=full_name, email=email.strip().lower(), role=role)
    u.set_password(password)
    db.session.add(u)
    if role == "student":
        ensure_student_record(u)
    return u


def ensure_student_record(user, ra=None):
    if user.student is None:
        user.student = Student(ra=ra or generate_ra())
    return user.student


def place_in_class(student, class_id):
    """Move a student to ``class_id`` and keep the enrollment history."""
    if student.class_id == class_id:
        return
    student.class_id = class_id
    if class_id is None:
        return
    if student.id is not None:
        exists = Enrollment.query.filter_by(student_id=student.id, class_id=class_id).first()
        if exists:
            return
    student.enrollments.append(Enrollment(class_id=class_id))
