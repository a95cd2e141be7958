from datetime import date

from flask import render_template, request, redirect, url_for, flash, abort, current_app
from flask_login import login_required, current_user
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import SchoolClass, Student, Subject, TeacherAllocation, Lesson, User
from ...permissions import role_required, can_view_class, is_teacher_for_class
from ...stats import teacher_classes
from ...utils import parse_date
from . import bp

YEAR_MIN, YEAR_MAX = 2000, 2100

def student_counts(class_ids):
    if not class_ids:
        return {}
    rows = (db.session.query(Student.class_id, func.count(Student.id))
            .filter(Student.class_id.in_(class_ids))
            .group_by(Student.class_id).all())
    return dict(rows)

def read_class_form(form):
    """Returns (values, error)."""
    name = (form.get("name") or "").strip()
    year = form.get("year", type=int) or date.today().year
    coord_id = form.get("coord_id", type=int)
    if not name:
        return None, "Class name is required"
    if not (YEAR_MIN <= year <= YEAR_MAX):
        return None, f"Year must be between {YEAR_MIN} and {YEAR_MAX}"
    if coord_id:
        coord = db.session.get(User, coord_id)
        if not coord or coord.role != "coord":
            return None, "Coordinator must be a user with the coordinator role"
    return {"name": name, "year": year, "coord_id": coord_id or None}, None

def coordinators():
    return User.query.filter_by(role="coord").order_by(User.full_name).all()

@bp.get("/")
@login_required
@role_required("admin", "coord", "teacher")
def index():
    if current_user.role == "teacher":
        items = teacher_classes(current_user)
    else:
        items = (SchoolClass.query.options(selectinload(SchoolClass.coord))
                 .order_by(SchoolClass.year.desc(), SchoolClass.name).all())
    counts = student_counts([c.id for c in items])
    return render_template("classes.html", items=items, counts=counts,
                           coordinators=coordinators(), current_year=date.today().year)

@bp.post("/")
@login_required
@role_required("admin", "coord")
def create_class():
    values, error = read_class_form(request.form)
    if error:
        flash(error); return redirect(url_for("classes.index"))
    db.session.add(SchoolClass(**values))
    try:
        db.session.commit()
        current_app.logger.info("Class %s/%s created by %s",
                                values["name"], values["year"], current_user.email)
        flash("Class created")
    except IntegrityError:
        db.session.rollback(); flash("A class with this name already exists for that year")
    return redirect(url_for("classes.index"))

@bp.get("/<int:cid>/edit")
@login_required
@role_required("admin", "coord")
def edit_class(cid):
    cls = db.get_or_404(SchoolClass, cid)
    return render_template("class_edit.html", cls=cls, coordinators=coordinators())

@bp.post("/<int:cid>/update")
@login_required
@role_required("admin", "coord")
def update_class(cid):
    cls = db.session.get(SchoolClass, cid)
    if not cls:
        flash("Class does not exist"); return redirect(url_for("classes.index"))
    values, error = read_class_form(request.form)
    if error:
        flash(error); return redirect(url_for("classes.edit_class", cid=cid))
    for key, value in values.items():
        setattr(cls, key, value)
    try:
        db.session.commit(); flash("Class updated")
    except IntegrityError:
        db.session.rollback(); flash("A class with this name already exists for that year")
    return redirect(url_for("classes.index"))

@bp.post("/<int:cid>/delete")
@login_required
@role_required("admin", "coord")
def delete_class(cid):
    cls = db.session.get(SchoolClass, cid)
    if not cls:
        flash("Class does not exist"); return redirect(url_for("classes.index"))
    name = cls.name
    db.session.delete(cls); db.session.commit()
    current_app.logger.info("Class %s deleted by %s", name, current_user.email)
    flash("Class deleted")
    return redirect(url_for("classes.index"))

@bp.get("/<int:cid>")
@login_required
def detail(cid):
    cls = (SchoolClass.query
           .options(selectinload(SchoolClass.students).selectinload(Student.profile),
                    selectinload(SchoolClass.allocations),
                    selectinload(SchoolClass.lessons))
           .filter_by(id=cid).first_or_404())
    if not can_view_class(current_user, cls):
        abort(403)
    roster = sorted(cls.students, key=lambda s: s.full_name)
    lessons = sorted(cls.lessons, key=lambda l: l.date, reverse=True)
    if current_user.role == "teacher":
        lesson_subjects = [a.subject for a in cls.allocations if a.teacher_id == current_user.id]
    else:
        lesson_subjects = [a.subject for a in cls.allocations]
    teachers = User.query.filter_by(role="teacher").order_by(User.full_name).all()
    subjects = Subject.query.order_by(Subject.name).all()
    return render_template("class_detail.html", cls=cls, roster=roster, lessons=lessons,
                           teachers=teachers, subjects=subjects,
                           lesson_subjects=sorted(set(lesson_subjects), key=lambda s: s.name),
                           can_log=current_user.role == "admin" or is_teacher_for_class(current_user, cls))

@bp.post("/<int:cid>/allocations")
@login_required
@role_required("admin", "coord")
def create_allocation(cid):
    cls = db.get_or_404(SchoolClass, cid)
    teacher_id = request.form.get("teacher_id", type=int)
    subject_id = request.form.get("subject_id", type=int)
    teacher = db.session.get(User, teacher_id) if teacher_id else None
    if not teacher or teacher.role != "teacher":
        flash("Select a teacher"); return redirect(url_for("classes.detail", cid=cid))
    if not subject_id or not db.session.get(Subject, subject_id):
        flash("Select a subject"); return redirect(url_for("classes.detail", cid=cid))
    db.session.add(TeacherAllocation(teacher_id=teacher.id, class_id=cls.id, subject_id=subject_id))
    try:
        db.session.commit(); flash("Teacher allocated")
    except IntegrityError:
        db.session.rollback(); flash("This teacher already teaches that subject to this class")
    return redirect(url_for("classes.detail", cid=cid))

@bp.post("/allocations/<int:aid>/delete")
@login_required
@role_required("admin", "coord")
def delete_allocation(aid):
    a = db.session.get(TeacherAllocation, aid)
    if not a:
        flash("Allocation does not exist"); return redirect(url_for("classes.index"))
    cid = a.class_id
    db.session.delete(a); db.session.commit(); flash("Allocation removed")
    return redirect(url_for("classes.detail", cid=cid))

@bp.post("/<int:cid>/lessons")
@login_required
@role_required("admin", "teacher")
def create_lesson(cid):
    cls = db.get_or_404(SchoolClass, cid)
    subject_id = request.form.get("subject_id", type=int)
    if current_user.role == "teacher" and not is_teacher_for_class(current_user, cls, subject_id):
        abort(403)
    lesson_date = parse_date(request.form.get("date"))
    topic = (request.form.get("topic") or "").strip()
    description = (request.form.get("description") or "").strip()
    if not subject_id or not db.session.get(Subject, subject_id):
        flash("Select a subject"); return redirect(url_for("classes.detail", cid=cid))
    if not lesson_date or not topic:
        flash("Date and topic are required"); return redirect(url_for("classes.detail", cid=cid))
    db.session.add(Lesson(class_id=cid, subject_id=subject_id, date=lesson_date,
                          topic=topic, description=description or None))
    db.session.commit(); flash("Lesson recorded")
    return redirect(url_for("classes.detail", cid=cid))

@bp.post("/lessons/<int:lid>/delete")
@login_required
@role_required("admin", "teacher")
def delete_lesson(lid):
    lesson = db.get_or_404(Lesson, lid)
    if current_user.role == "teacher" and not is_teacher_for_class(
            current_user, lesson.school_class, lesson.subject_id):
        abort(403)
    cid = lesson.class_id
    db.session.delete(lesson); db.session.commit(); flash("Lesson deleted")
    return redirect(url_for("classes.detail", cid=cid))
