from flask import render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError

from ...extensions import db
from ...models import Subject
from ...permissions import role_required
from ...stats import class_subjects
from . import bp

WORKLOAD_MIN, WORKLOAD_MAX = 1, 40

def read_subject_form(form):
    name = (form.get("name") or "").strip()
    description = (form.get("description") or "").strip()
    hours = form.get("workload_hours", type=int)
    if not name:
        return None, "Subject name is required"
    if hours is None or not (WORKLOAD_MIN <= hours <= WORKLOAD_MAX):
        return None, f"Workload must be between {WORKLOAD_MIN} and {WORKLOAD_MAX} hours"
    return {"name": name, "description": description or None, "workload_hours": hours}, None

@bp.get("/")
@login_required
def index():
    if current_user.role == "student":
        student = current_user.student
        items = class_subjects(student.class_id) if student and student.class_id else []
    else:
        items = Subject.query.order_by(Subject.name).all()
    return render_template("subjects.html", items=items)

@bp.post("/")
@login_required
@role_required("admin", "coord")
def create_subject():
    values, error = read_subject_form(request.form)
    if error:
        flash(error); return redirect(url_for("subjects.index"))
    db.session.add(Subject(**values))
    try:
        db.session.commit()
        current_app.logger.info("Subject %s created by %s", values["name"], current_user.email)
        flash("Subject created")
    except IntegrityError:
        db.session.rollback(); flash("Subject name must be unique")
    return redirect(url_for("subjects.index"))

@bp.get("/<int:sid>/edit")
@login_required
@role_required("admin", "coord")
def edit_subject(sid):
    return render_template("subject_edit.html", subject=db.get_or_404(Subject, sid))

@bp.post("/<int:sid>/update")
@login_required
@role_required("admin", "coord")
def update_subject(sid):
    subject = db.session.get(Subject, sid)
    if not subject:
        flash("Subject not found"); return redirect(url_for("subjects.index"))
    values, error = read_subject_form(request.form)
    if error:
        flash(error); return redirect(url_for("subjects.edit_subject", sid=sid))
    for key, value in values.items():
        setattr(subject, key, value)
    try:
        db.session.commit(); flash("Subject updated")
    except IntegrityError:
        db.session.rollback(); flash("Subject name must be unique")
    return redirect(url_for("subjects.index"))

@bp.post("/<int:sid>/delete")
@login_required
@role_required("admin", "coord")
def delete_subject(sid):
    subject = db.session.get(Subject, sid)
    if not subject:
        flash("Subject not found"); return redirect(url_for("subjects.index"))
    db.session.delete(subject); db.session.commit(); flash("Subject deleted")
    return redirect(url_for("subjects.index"))
