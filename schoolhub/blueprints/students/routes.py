import csv
import io
from datetime import datetime

from flask import render_template, request, redirect, url_for, flash, abort, current_app
from flask_login import login_required, current_user
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from werkzeug.utils import secure_filename

from ...extensions import db
from ...models import Student, User, SchoolClass, Subject, Incident, ImportLog
from ...accounts import create_account, place_in_class
from ...permissions import role_required, is_teacher_for_class
from ...stats import teacher_classes
from ...utils import parse_date, today
from . import bp

IMPORT_COLUMNS = ("full_name", "email")

def class_choices():
    return SchoolClass.query.order_by(SchoolClass.year.desc(), SchoolClass.name).all()

def read_class_id(form):
    """Returns (class_id, error); an empty field means no class."""
    class_id = form.get("class_id", type=int)
    if class_id and not db.session.get(SchoolClass, class_id):
        return None, "Class does not exist"
    return class_id or None, None

@bp.get("/")
@login_required
@role_required("admin", "coord")
def index():
    q     = (request.args.get("q") or "").strip()
    sort  = request.args.get("sort", "name")       # name|ra|class
    order = request.args.get("order", "asc")       # asc|desc
    page  = max(request.args.get("page", type=int) or 1, 1)
    per   = min(max(request.args.get("per_page", type=int) or current_app.config["PER_PAGE"], 1), 100)

    query = (Student.query.join(User, Student.profile_id == User.id)
             .outerjoin(SchoolClass, Student.class_id == SchoolClass.id)
             .options(selectinload(Student.profile), selectinload(Student.school_class)))
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            User.full_name.ilike(like),
            User.email.ilike(like),
            Student.ra.ilike(like),
        ))

    sort_map = {
        "name":  User.full_name,
        "ra":    Student.ra,
        "class": SchoolClass.name,
    }
    col = sort_map.get(sort, User.full_name)
    query = query.order_by(col.desc() if order == "desc" else col.asc())

    total = query.count()
    items = query.offset((page-1)*per).limit(per).all()
    pages = max(1, (total + per - 1)//per)

    imports = ImportLog.query.order_by(ImportLog.created_at.desc(), ImportLog.id.desc()).limit(5).all()
    return render_template("students.html",
        items=items, classes=class_choices(), imports=imports,
        q=q, sort=sort, order=order,
        page=page, per_page=per, total=total, pages=pages
    )

@bp.post("/")
@login_required
@role_required("admin", "coord")
def create_student():
    full_name  = (request.form.get("full_name") or "").strip()
    email      = (request.form.get("email") or "").strip().lower()
    ra         = (request.form.get("ra") or "").strip()
    phone      = (request.form.get("phone") or "").strip()
    birth_date = parse_date(request.form.get("birth_date"))
    if not full_name or not email:
        flash("Full name and email are required")
        return redirect(url_for("students.index"))
    class_id, error = read_class_id(request.form)
    if error:
        flash(error); return redirect(url_for("students.index"))
    u = create_account(full_name, email, "student",
                       current_app.config["DEFAULT_STUDENT_PASSWORD"])
    s = u.student
    if ra:
        s.ra = ra
    s.phone = phone or None
    s.birth_date = birth_date
    place_in_class(s, class_id)
    try:
        db.session.commit()
        current_app.logger.info("Student %s created by %s", email, current_user.email)
        flash("Student created")
    except IntegrityError:
        db.session.rollback(); flash("Email and enrollment number must be unique")
    return redirect(url_for("students.index"))

@bp.get("/<int:sid>/edit")
@login_required
@role_required("admin", "coord")
def edit_student(sid):
    s = db.get_or_404(Student, sid)
    return render_template("student_edit.html", s=s, classes=class_choices())

@bp.post("/<int:sid>/update")
@login_required
@role_required("admin", "coord")
def update_student(sid):
    s = db.session.get(Student, sid)
    if not s:
        flash("Student not found"); return redirect(url_for("students.index"))
    class_id, error = read_class_id(request.form)
    if error:
        flash(error); return redirect(url_for("students.edit_student", sid=sid))
    place_in_class(s, class_id)
    s.profile.full_name = (request.form.get("full_name") or s.profile.full_name).strip()
    s.profile.email     = (request.form.get("email") or s.profile.email).strip().lower()
    s.ra                = (request.form.get("ra") or s.ra).strip()
    s.phone             = (request.form.get("phone") or "").strip() or None
    bd                  = request.form.get("birth_date")
    s.birth_date        = parse_date(bd) if bd not in (None, "") else s.birth_date
    try:
        db.session.commit(); flash("Student updated")
    except IntegrityError:
        db.session.rollback(); flash("Email and enrollment number must be unique")
    return redirect(url_for("students.index"))

@bp.post("/<int:sid>/delete")
@login_required
@role_required("admin", "coord")
def delete_student(sid):
    s = db.session.get(Student, sid)
    if not s:
        flash("Student not found"); return redirect(url_for("students.index"))
    email = s.profile.email
    # the account owns the student record
    db.session.delete(s.profile); db.session.commit()
    current_app.logger.info("Student %s deleted by %s", email, current_user.email)
    flash("Student deleted")
    return redirect(url_for("students.index"))

# ---------- CSV import ----------
def import_rows(reader):
    """Create students from CSV rows; returns (created, skipped, errors)."""
    classes = {}
    for c in SchoolClass.query.order_by(SchoolClass.year.asc()).all():
        classes[c.name.strip().lower()] = c.id      # newest year wins
    created, skipped, errors = 0, 0, []
    seen = set()
    for line, row in enumerate(reader, start=2):
        full_name = (row.get("full_name") or "").strip()
        email = (row.get("email") or "").strip().lower()
        ra = (row.get("ra") or "").strip()
        class_name = (row.get("class_name") or "").strip().lower()
        if not full_name or not email:
            errors.append(f"line {line}: full_name and email are required")
            continue
        if email in seen or User.query.filter_by(email=email).first():
            skipped += 1
            continue
        class_id = None
        if class_name:
            class_id = classes.get(class_name)
            if class_id is None:
                errors.append(f"line {line}: unknown class '{row.get('class_name')}'")
                continue
        seen.add(email)
        u = create_account(full_name, email, "student",
                           current_app.config["DEFAULT_STUDENT_PASSWORD"])
        if ra:
            u.student.ra = ra
        place_in_class(u.student, class_id)
        created += 1
    return created, skipped, errors

@bp.post("/import")
@login_required
@role_required("admin", "coord")
def import_students():
    upload = request.files.get("file")
    if not upload or not upload.filename:
        flash("Choose a CSV file to import"); return redirect(url_for("students.index"))
    filename = secure_filename(upload.filename) or "upload.csv"
    log = ImportLog(uploaded_by=current_user.id, file_name=filename)
    try:
        text = upload.read().decode("utf-8-sig")
        reader = csv.DictReader(io.StringIO(text))
        missing = [c for c in IMPORT_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError("missing columns: " + ", ".join(missing))
        created, skipped, errors = import_rows(reader)
        if errors:
            raise ValueError("; ".join(errors))
        db.session.commit()
    except (UnicodeDecodeError, csv.Error, ValueError, IntegrityError) as exc:
        db.session.rollback()
        log.status = "failed"
        log.error_message = str(exc)
        current_app.logger.warning("Import of %s failed: %s", filename, exc)
        flash(f"Import failed: {exc}")
    else:
        log.status = "processed"
        current_app.logger.info("Imported %d students from %s (%d skipped)",
                                created, filename, skipped)
        flash(f"Imported {created} students ({skipped} already registered)")
    log.processed_at = datetime.now()
    db.session.add(log)
    db.session.commit()
    return redirect(url_for("students.index"))

# ---------- Incidents ----------
def reportable_students(user):
    q = Student.query.join(User, Student.profile_id == User.id).options(selectinload(Student.profile))
    if user.role == "teacher":
        class_ids = [c.id for c in teacher_classes(user)]
        q = q.filter(Student.class_id.in_(class_ids or [-1]))
    return q.order_by(User.full_name).all()

@bp.get("/incidents")
@login_required
@role_required("admin", "coord", "teacher")
def incidents():
    q = Incident.query.options(selectinload(Incident.student).selectinload(Student.profile),
                               selectinload(Incident.subject), selectinload(Incident.reporter))
    if current_user.role == "teacher":
        q = q.filter(Incident.reporter_id == current_user.id)
    items = q.order_by(Incident.date.desc(), Incident.id.desc()).all()
    return render_template("incidents.html", items=items,
                           students=reportable_students(current_user),
                           subjects=Subject.query.order_by(Subject.name).all(),
                           today=today())

@bp.post("/incidents")
@login_required
@role_required("admin", "coord", "teacher")
def create_incident():
    student_id  = request.form.get("student_id", type=int)
    subject_id  = request.form.get("subject_id", type=int)
    kind        = (request.form.get("type") or "").strip()
    description = (request.form.get("description") or "").strip()
    when        = parse_date(request.form.get("date")) or today()
    s = db.session.get(Student, student_id) if student_id else None
    if not s:
        flash("Select a student"); return redirect(url_for("students.incidents"))
    if current_user.role == "teacher" and (
            s.school_class is None or not is_teacher_for_class(current_user, s.school_class)):
        abort(403)
    if not kind or not description:
        flash("Type and description are required")
        return redirect(url_for("students.incidents"))
    if subject_id and not db.session.get(Subject, subject_id):
        flash("Subject does not exist"); return redirect(url_for("students.incidents"))
    db.session.add(Incident(reporter_id=current_user.id, student_id=s.id,
                            subject_id=subject_id or None, date=when,
                            type=kind, description=description))
    db.session.commit()
    current_app.logger.info("Incident for student %s recorded by %s", s.ra, current_user.email)
    flash("Incident recorded")
    return redirect(url_for("students.incidents"))

@bp.post("/incidents/<int:iid>/delete")
@login_required
@role_required("admin", "coord", "teacher")
def delete_incident(iid):
    inc = db.session.get(Incident, iid)
    if not inc:
        flash("Incident does not exist"); return redirect(url_for("students.incidents"))
    if current_user.role == "teacher" and inc.reporter_id != current_user.id:
        abort(403)
    db.session.delete(inc); db.session.commit(); flash("Incident deleted")
    return redirect(url_for("students.incidents"))
