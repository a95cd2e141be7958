from datetime import datetime

from flask import render_template, request, redirect, url_for, flash, abort, current_app
from flask_login import login_required, current_user
from sqlalchemy import or_

from ...extensions import db
from ...models import Announcement, SchoolClass
from ...permissions import role_required, quick_actions_for, is_teacher_for_class
from ... import stats
from . import bp

def greeting(hour):
    if hour < 12:
        return "Good morning"
    if hour < 18:
        return "Good afternoon"
    return "Good evening"

def stat_cards(user):
    role = user.role
    if role in ("admin", "coord"):
        counts = stats.dashboard_counts()
        cards = [
            ("Total students", counts["students"], "enrolled students"),
            ("Total teachers", counts["teachers"], "registered teachers"),
            ("Total classes", counts["classes"], "active classes"),
        ]
        if role == "admin":
            cards.append(("Subjects", counts["subjects"], "registered subjects"))
        return cards
    if role == "teacher":
        counts = stats.teacher_counts(user)
        return [
            ("My classes", counts["classes"], "classes I teach"),
            ("My students", counts["students"], "students in total"),
        ]
    if user.student is None:
        return []
    counts = stats.student_counts(user.student)
    return [
        ("My subjects", counts["subjects"], "subjects in my class"),
        ("Overall average", f"{counts['average']:.1f}", "current average"),
    ]

def visible_class_ids(user):
    if user.role == "student":
        return [user.student.class_id] if user.student and user.student.class_id else []
    if user.role == "teacher":
        return [c.id for c in stats.teacher_classes(user)]
    if user.role == "coord":
        return [c.id for c in user.coordinated_classes]
    return None  # admin sees everything

def announcements_for(user):
    q = Announcement.query
    class_ids = visible_class_ids(user)
    if class_ids is not None:
        q = q.filter(or_(Announcement.target_class_id.is_(None),
                         Announcement.target_class_id.in_(class_ids)))
    return q.order_by(Announcement.created_at.desc(), Announcement.id.desc()).limit(20).all()

def postable_classes(user):
    if user.role == "teacher":
        return stats.teacher_classes(user)
    return SchoolClass.query.order_by(SchoolClass.year.desc(), SchoolClass.name).all()

@bp.get("/")
@login_required
def home():
    u = current_user
    return render_template("dashboard.html",
        greeting=f"{greeting(datetime.now().hour)}, {u.first_name}!",
        today=datetime.now(),
        cards=stat_cards(u),
        actions=quick_actions_for(u.role),
        announcements=announcements_for(u),
        classes=postable_classes(u) if u.role != "student" else [],
    )

@bp.post("/announcements")
@login_required
@role_required("admin", "coord", "teacher")
def create_announcement():
    title = (request.form.get("title") or "").strip()
    content = (request.form.get("content") or "").strip()
    class_id = request.form.get("target_class_id", type=int)
    if not title or not content:
        flash("Title and content are required")
        return redirect(url_for("dashboard.home"))
    if class_id:
        cls = db.session.get(SchoolClass, class_id)
        if not cls:
            flash("Class does not exist"); return redirect(url_for("dashboard.home"))
        if current_user.role == "teacher" and not is_teacher_for_class(current_user, cls):
            abort(403)
    elif current_user.role == "teacher":
        flash("Teachers can only post to their own classes")
        return redirect(url_for("dashboard.home"))
    db.session.add(Announcement(author_id=current_user.id, title=title,
                                content=content, target_class_id=class_id or None))
    db.session.commit()
    current_app.logger.info("Announcement '%s' posted by %s", title, current_user.email)
    flash("Announcement posted")
    return redirect(url_for("dashboard.home"))

@bp.post("/announcements/<int:aid>/delete")
@login_required
@role_required("admin", "coord", "teacher")
def delete_announcement(aid):
    a = db.session.get(Announcement, aid)
    if not a:
        flash("Announcement does not exist"); return redirect(url_for("dashboard.home"))
    if current_user.role != "admin" and a.author_id != current_user.id:
        abort(403)
    db.session.delete(a); db.session.commit(); flash("Announcement deleted")
    return redirect(url_for("dashboard.home"))
