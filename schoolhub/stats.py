"""Aggregates shown on the dashboard, the grade views and the reports.

Scores are normalised to a 10-point scale before averaging so that
assessments with different ``max_score`` values can be combined.
"""
from sqlalchemy import func, case

from .extensions import db
from .models import (User, Student, SchoolClass, Subject, TeacherAllocation,
                     Assessment, Grade, Attendance)

BIMESTERS = (1, 2, 3, 4)


def score_band(score):
    if score is None:
        return "none"
    if score >= 9:
        return "excellent"
    if score >= 7:
        return "good"
    if score >= 5:
        return "fair"
    return "low"


def overall_average(scores):
    """Plain mean of the given scores; ungraded (None) entries are ignored."""
    values = [s for s in scores if s is not None]
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def normalised_score(grade):
    if grade.score is None:
        return None
    return round(grade.score / grade.assessment.max_score * 10, 2)


def weighted_average(rows):
    """``rows`` is an iterable of ``(score, max_score, weight)``."""
    total = 0.0
    weights = 0.0
    for score, max_score, weight in rows:
        if score is None or not max_score:
            continue
        total += (score / max_score) * 10 * weight
        weights += weight
    if weights == 0:
        return None
    return round(total / weights, 2)


def bimester_average(student_id, subject_id, bimester):
    rows = (db.session.query(Grade.score, Assessment.max_score, Assessment.weight)
            .join(Assessment, Grade.assessment_id == Assessment.id)
            .join(Student, Grade.student_id == Student.id)
            .filter(Grade.student_id == student_id,
                    Assessment.subject_id == subject_id,
                    Assessment.bimester == bimester,
                    Assessment.class_id == Student.class_id,
                    Grade.score.isnot(None))
            .all())
    return weighted_average(rows)


def final_average(student_id, subject_id):
    averages = [bimester_average(student_id, subject_id, b) for b in BIMESTERS]
    averages = [a for a in averages if a is not None]
    if not averages:
        return None
    return round(sum(averages) / len(averages), 2)


def attendance_summary(class_id, start_date, end_date):
    """One row per student of the class with attendance counts in the range."""
    in_range = (Attendance.date >= start_date) & (Attendance.date <= end_date)
    present = func.sum(case((Attendance.status == "present", 1), else_=0))
    absent = func.sum(case((Attendance.status == "absent", 1), else_=0))
    justified = func.sum(case((Attendance.status == "justified", 1), else_=0))
    rows = (db.session.query(Student.id, User.full_name,
                             func.count(Attendance.id), present, absent, justified)
            .join(User, Student.profile_id == User.id)
            .outerjoin(Attendance, (Attendance.student_id == Student.id) & in_range)
            .filter(Student.class_id == class_id)
            .group_by(Student.id, User.full_name)
            .order_by(User.full_name)
            .all())
    summary = []
    for student_id, name, total, p, a, j in rows:
        p, a, j = p or 0, a or 0, j or 0
        summary.append({
            "student_id": student_id,
            "student_name": name,
            "total_classes": total,
            "present_count": p,
            "absent_count": a,
            "justified_count": j,
            "attendance_rate": round(p / total * 100, 2) if total else 0.0,
        })
    return summary


def dashboard_counts():
    def count_role(role):
        return User.query.filter_by(role=role).count()
    return {
        "students": count_role("student"),
        "teachers": count_role("teacher"),
        "classes": SchoolClass.query.count(),
        "subjects": Subject.query.count(),
    }


def classes_by_year():
    rows = (db.session.query(SchoolClass.year, func.count(SchoolClass.id))
            .group_by(SchoolClass.year)
            .order_by(SchoolClass.year)
            .all())
    return [{"year": year, "count": count} for year, count in rows]


def subject_performance():
    normalised = Grade.score / Assessment.max_score * 10
    rows = (db.session.query(Subject.name, func.avg(normalised), func.count(Grade.id))
            .join(Assessment, Assessment.subject_id == Subject.id)
            .join(Grade, Grade.assessment_id == Assessment.id)
            .filter(Grade.score.isnot(None))
            .group_by(Subject.name)
            .order_by(Subject.name)
            .all())
    return [{"subject": name, "average": round(avg or 0, 2), "grades": n}
            for name, avg, n in rows]


def teacher_classes(user):
    """Distinct classes a teacher is allocated to, ordered by name."""
    seen = {}
    for a in user.allocations:
        seen.setdefault(a.class_id, a.school_class)
    return sorted(seen.values(), key=lambda c: (c.name, c.year))


def teacher_counts(user):
    class_ids = [c.id for c in teacher_classes(user)]
    students = 0
    if class_ids:
        students = Student.query.filter(Student.class_id.in_(class_ids)).count()
    return {"classes": len(class_ids), "students": students}


def class_subjects(class_id):
    return (Subject.query
            .join(TeacherAllocation, TeacherAllocation.subject_id == Subject.id)
            .filter(TeacherAllocation.class_id == class_id)
            .distinct()
            .order_by(Subject.name)
            .all())


def student_counts(student):
    subjects = class_subjects(student.class_id) if student.class_id else []
    scores = [normalised_score(g) for g in student.grades]
    return {"subjects": len(subjects), "average": overall_average(scores)}
