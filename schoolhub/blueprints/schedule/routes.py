from collections import Counter

from flask import render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import Schedule, SchoolClass, Subject, User
from ...permissions import role_required
from ...utils import parse_time, today
from ... import WEEKDAY_NAMES
from . import bp

SCHOOL_DAYS = range(1, 6)

def visible_entries(user, class_id=None):
    q = Schedule.query.options(selectinload(Schedule.school_class),
                               selectinload(Schedule.subject),
                               selectinload(Schedule.teacher))
    if user.role == "teacher":
        q = q.filter(Schedule.teacher_id == user.id)
    elif user.role == "student":
        student = user.student
        if student is None or student.class_id is None:
            return []
        q = q.filter(Schedule.class_id == student.class_id)
    elif class_id:
        q = q.filter(Schedule.class_id == class_id)
    return q.order_by(Schedule.day_of_week, Schedule.start_time).all()

def group_by_day(entries):
    week = {d: [] for d in SCHOOL_DAYS}
    for e in entries:
        week.setdefault(e.day_of_week, []).append(e)
    return week

def weekly_summary(entries):
    per_subject = Counter(e.subject.name for e in entries)
    return {
        "lessons": len(entries),
        "subjects": len(per_subject),
        "per_subject": sorted(per_subject.items()),
    }

def find_conflict(entry):
    """An existing entry of the same class or teacher overlapping ``entry``."""
    candidates = Schedule.query.filter(
        Schedule.day_of_week == entry.day_of_week,
        or_(Schedule.class_id == entry.class_id, Schedule.teacher_id == entry.teacher_id),
    ).all()
    for other in candidates:
        if other.id != entry.id and entry.overlaps(other):
            return other
    return None

@bp.get("/")
@login_required
def index():
    class_id = request.args.get("class_id", type=int)
    entries = visible_entries(current_user, class_id)
    weekday = today().isoweekday()
    manage = current_user.role in ("admin", "coord")
    return render_template("schedule.html",
        week=group_by_day(entries),
        today_entries=[e for e in entries if e.day_of_week == weekday],
        today_name=WEEKDAY_NAMES[weekday],
        summary=weekly_summary(entries),
        class_id=class_id,
        classes=SchoolClass.query.order_by(SchoolClass.name).all() if manage else [],
        subjects=Subject.query.order_by(Subject.name).all() if manage else [],
        teachers=User.query.filter_by(role="teacher").order_by(User.full_name).all() if manage else [],
    )

@bp.post("/")
@login_required
@role_required("admin", "coord")
def create_entry():
    class_id   = request.form.get("class_id", type=int)
    subject_id = request.form.get("subject_id", type=int)
    teacher_id = request.form.get("teacher_id", type=int)
    weekday    = request.form.get("day_of_week", type=int)
    t_start    = parse_time(request.form.get("start"))
    t_end      = parse_time(request.form.get("end"))
    room       = (request.form.get("room") or "").strip()
    back = url_for("schedule.index", class_id=class_id)

    if not (class_id and subject_id and teacher_id):
        flash("Class, subject and teacher are required"); return redirect(back)
    teacher = db.session.get(User, teacher_id)
    if not db.session.get(SchoolClass, class_id) or not db.session.get(Subject, subject_id) \
            or not teacher or teacher.role != "teacher":
        flash("The class, subject or teacher does not exist"); return redirect(back)
    if weekday not in SCHOOL_DAYS:
        flash("Day must be a school day (Monday to Friday)"); return redirect(back)
    if t_start is None or t_end is None:
        flash("Time format must be HH:MM"); return redirect(back)
    if not (t_start < t_end):
        flash("End time must be later than start time"); return redirect(back)

    entry = Schedule(class_id=class_id, subject_id=subject_id, teacher_id=teacher_id,
                     day_of_week=weekday, start_time=t_start, end_time=t_end,
                     room=room or None)
    clash = find_conflict(entry)
    if clash:
        who = "class" if clash.class_id == class_id else "teacher"
        msg = (f"Conflicts with {clash.subject.name} for the same {who}: "
               f"{WEEKDAY_NAMES[clash.day_of_week]} "
               f"{clash.start_time.strftime('%H:%M')}-{clash.end_time.strftime('%H:%M')}")
        current_app.logger.warning("Schedule rejected: %s", msg)
        flash(msg)
        return redirect(back)

    db.session.add(entry)
    db.session.commit()
    flash("Schedule entry added")
    return redirect(back)

@bp.post("/<int:eid>/delete")
@login_required
@role_required("admin", "coord")
def delete_entry(eid):
    entry = db.session.get(Schedule, eid)
    if not entry:
        flash("Schedule entry does not exist")
        return redirect(url_for("schedule.index"))
    class_id = entry.class_id
    db.session.delete(entry)
    db.session.commit()
    flash("Schedule entry deleted")
    return redirect(url_for("schedule.index", class_id=class_id))
