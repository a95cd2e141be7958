from flask import render_template, request, redirect, url_for, flash, abort, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import (SchoolClass, Subject, TeacherAllocation, Assessment,
                       Grade, Attendance, ATTENDANCE_STATUSES)
from ...permissions import role_required, is_teacher_for_class
from ...utils import parse_date, today
from ... import stats
from . import bp

def gradable_pair(cid, subject_id):
    """Load (class, subject) and make sure the current user may grade it."""
    cls = db.get_or_404(SchoolClass, cid)
    subject = db.get_or_404(Subject, subject_id)
    if current_user.role != "admin" and not is_teacher_for_class(current_user, cls, subject.id):
        abort(403)
    return cls, subject

def class_roster(cls):
    return sorted(cls.students, key=lambda s: s.full_name)

@bp.get("/")
@login_required
@role_required("admin", "teacher")
def index():
    q = TeacherAllocation.query.options(selectinload(TeacherAllocation.school_class),
                                        selectinload(TeacherAllocation.subject))
    if current_user.role == "teacher":
        q = q.filter_by(teacher_id=current_user.id)
    pairs = {}
    for a in q.all():
        pairs.setdefault((a.class_id, a.subject_id), a)
    allocations = sorted(pairs.values(),
                         key=lambda a: (a.school_class.name, a.subject.name))
    return render_template("grades_index.html", allocations=allocations)

@bp.route("/classes/<int:cid>/subjects/<int:subject_id>/assessments", methods=["GET", "POST"])
@login_required
@role_required("admin", "teacher")
def assessments(cid, subject_id):
    cls, subject = gradable_pair(cid, subject_id)
    back = url_for("grades.assessments", cid=cid, subject_id=subject_id)

    if request.method == "POST":
        name     = (request.form.get("name") or "").strip()
        when     = parse_date(request.form.get("date")) or today()
        full     = request.form.get("max_score", type=float)
        weight   = request.form.get("weight", type=float)
        bimester = request.form.get("bimester", type=int)

        if not name:
            flash("Assessment name is required"); return redirect(back)
        if full is None or full <= 0:
            flash("The maximum score must be greater than 0"); return redirect(back)
        if weight is None or weight <= 0:
            flash("The weight must be greater than 0"); return redirect(back)
        if bimester not in stats.BIMESTERS:
            flash("Bimester must be between 1 and 4"); return redirect(back)

        db.session.add(Assessment(class_id=cid, subject_id=subject_id, name=name, date=when,
                                  max_score=full, weight=weight, bimester=bimester))
        try:
            db.session.commit()
            current_app.logger.info("Assessment '%s' created for %s/%s by %s",
                                    name, cls.name, subject.name, current_user.email)
            flash("Assessment created")
        except IntegrityError:
            db.session.rollback()
            flash("Failed to save (possibly duplicate name)")
        return redirect(back)

    items = (Assessment.query
             .filter_by(class_id=cid, subject_id=subject_id)
             .order_by(Assessment.bimester, Assessment.date.desc()).all())
    return render_template("assessments.html", cls=cls, subject=subject,
                           assessments=items, today=today())

@bp.post("/assessments/<int:aid>/delete")
@login_required
@role_required("admin", "teacher")
def delete_assessment(aid):
    a = db.session.get(Assessment, aid)
    if not a:
        flash("Assessment does not exist"); return redirect(url_for("grades.index"))
    gradable_pair(a.class_id, a.subject_id)
    cid, subject_id = a.class_id, a.subject_id
    db.session.delete(a); db.session.commit()
    flash("Assessment deleted")
    return redirect(url_for("grades.assessments", cid=cid, subject_id=subject_id))

@bp.route("/classes/<int:cid>/subjects/<int:subject_id>/gradebook", methods=["GET", "POST"])
@login_required
@role_required("admin", "teacher")
def gradebook(cid, subject_id):
    cls, subject = gradable_pair(cid, subject_id)
    roster = class_roster(cls)
    items = (Assessment.query.options(selectinload(Assessment.grades))
             .filter_by(class_id=cid, subject_id=subject_id)
             .order_by(Assessment.bimester, Assessment.date).all())

    if request.method == "POST":
        saved, rejected = 0, 0
        for s in roster:
            for a in items:
                val = request.form.get(f"scores-{s.id}-{a.id}")
                if val is None or val.strip() == "":
                    continue
                try:
                    score = float(val.replace(",", "."))
                except ValueError:
                    rejected += 1
                    continue
                if not (0 <= score <= a.max_score):
                    rejected += 1
                    continue
                g = Grade.query.filter_by(student_id=s.id, assessment_id=a.id).one_or_none()
                if g is None:
                    db.session.add(Grade(student_id=s.id, assessment_id=a.id, score=score))
                else:
                    g.score = score
                saved += 1
        db.session.commit()
        current_app.logger.info("Gradebook %s/%s: %d scores saved, %d rejected by %s",
                                cls.name, subject.name, saved, rejected, current_user.email)
        if rejected:
            flash(f"Saved {saved} scores; {rejected} invalid values were ignored")
        else:
            flash(f"Saved {saved} scores")
        return redirect(url_for("grades.gradebook", cid=cid, subject_id=subject_id))

    grade_map = {}
    for a in items:
        for g in a.grades:
            grade_map[(g.student_id, a.id)] = g.score
    return render_template("gradebook.html", cls=cls, subject=subject, roster=roster,
                           assessments=items, grade_map=grade_map)

@bp.get("/me")
@login_required
@role_required("student")
def my_grades():
    stu = current_user.student
    grades = []
    if stu is not None:
        grades = (Grade.query
                  .options(selectinload(Grade.assessment).selectinload(Assessment.subject),
                           selectinload(Grade.assessment).selectinload(Assessment.school_class))
                  .join(Assessment)
                  .filter(Grade.student_id == stu.id)
                  .order_by(Assessment.date.desc()).all())
    rows = [{
        "assessment": g.assessment.name,
        "subject": g.assessment.subject.name,
        "class": g.assessment.school_class.name,
        "date": g.assessment.date,
        "score": g.score,
        "max_score": g.assessment.max_score,
        "normalised": stats.normalised_score(g),
    } for g in grades]

    subjects = {}
    for g in grades:
        subjects.setdefault(g.assessment.subject_id, g.assessment.subject)
    averages = []
    for subject in sorted(subjects.values(), key=lambda s: s.name):
        averages.append({
            "subject": subject.name,
            "bimesters": [stats.bimester_average(stu.id, subject.id, b) for b in stats.BIMESTERS],
            "final": stats.final_average(stu.id, subject.id),
        })
    return render_template("my_grades.html", rows=rows, averages=averages,
                           overall=stats.overall_average([r["normalised"] for r in rows]))

# ---------- Attendance ----------
@bp.route("/attendance", methods=["GET", "POST"])
@login_required
@role_required("admin", "teacher")
def attendance():
    q = TeacherAllocation.query.options(selectinload(TeacherAllocation.school_class),
                                        selectinload(TeacherAllocation.subject))
    if current_user.role == "teacher":
        q = q.filter_by(teacher_id=current_user.id)
    allocations = q.all()

    source = request.form if request.method == "POST" else request.args
    cid = source.get("class_id", type=int)
    subject_id = source.get("subject_id", type=int)
    day = parse_date(source.get("date")) or today()
    if not (cid and subject_id):
        return render_template("attendance.html", allocations=allocations,
                               cls=None, subject=None, day=day)

    cls, subject = gradable_pair(cid, subject_id)
    roster = class_roster(cls)
    back = url_for("grades.attendance", class_id=cid, subject_id=subject_id, date=day.isoformat())

    if request.method == "POST":
        recorded = 0
        for s in roster:
            status = request.form.get(f"status-{s.id}")
            if status not in ATTENDANCE_STATUSES:
                continue
            justification = (request.form.get(f"justification-{s.id}") or "").strip() or None
            row = Attendance.query.filter_by(student_id=s.id, subject_id=subject_id,
                                             date=day).one_or_none()
            if row is None:
                row = Attendance(student_id=s.id, subject_id=subject_id, date=day)
                db.session.add(row)
            row.status = status
            row.justification = justification if status == "justified" else None
            recorded += 1
        db.session.commit()
        current_app.logger.info("Attendance %s/%s on %s: %d records by %s",
                                cls.name, subject.name, day, recorded, current_user.email)
        flash(f"Attendance saved for {recorded} students")
        return redirect(back)

    existing = {a.student_id: a for a in Attendance.query.filter(
        Attendance.subject_id == subject_id, Attendance.date == day,
        Attendance.student_id.in_([s.id for s in roster] or [-1])).all()}
    return render_template("attendance.html", allocations=allocations, cls=cls,
                           subject=subject, day=day, roster=roster, existing=existing,
                           statuses=ATTENDANCE_STATUSES)
