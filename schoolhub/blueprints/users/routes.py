from flask import render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError

from ...extensions import db
from ...models import User, ROLES
from ...accounts import create_account, ensure_student_record
from ...permissions import role_required
from . import bp

@bp.get("/")
@login_required
@role_required("admin")
def index():
    tab = request.args.get("role", "all")
    query = User.query
    if tab in ROLES:
        query = query.filter_by(role=tab)
    else:
        tab = "all"
    items = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return render_template("users.html", items=items, tab=tab, roles=ROLES)

@bp.post("/")
@login_required
@role_required("admin")
def create_user():
    full_name = (request.form.get("full_name") or "").strip()
    email     = (request.form.get("email") or "").strip().lower()
    role      = request.form.get("role", "student")
    password  = request.form.get("password", "")
    if not full_name or not email:
        flash("Full name and email are required")
        return redirect(url_for("users.index"))
    if role not in ROLES:
        flash("Unknown role"); return redirect(url_for("users.index"))
    if len(password) < 6:
        flash("Password must be at least 6 characters")
        return redirect(url_for("users.index"))
    create_account(full_name, email, role, password)
    try:
        db.session.commit()
        current_app.logger.info("User %s (%s) created by %s", email, role, current_user.email)
        flash("User created")
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Duplicate user email %s", email)
        flash("Email is already registered")
    return redirect(url_for("users.index"))

@bp.get("/<int:uid>/edit")
@login_required
@role_required("admin")
def edit_user(uid):
    u = db.get_or_404(User, uid)
    return render_template("user_edit.html", u=u, roles=ROLES)

@bp.post("/<int:uid>/update")
@login_required
@role_required("admin")
def update_user(uid):
    u = db.session.get(User, uid)
    if not u:
        flash("User not found"); return redirect(url_for("users.index"))
    role = request.form.get("role", u.role)
    if role not in ROLES:
        flash("Unknown role"); return redirect(url_for("users.edit_user", uid=uid))
    if u.id == current_user.id and role != "admin":
        flash("You cannot remove your own administrator role")
        return redirect(url_for("users.edit_user", uid=uid))
    if u.student is not None and role != "student":
        flash("Student accounts cannot be given another role")
        return redirect(url_for("users.edit_user", uid=uid))
    u.full_name = (request.form.get("full_name") or u.full_name).strip()
    u.role = role
    if u.id != current_user.id:
        u.active = request.form.get("active") == "on"
    if role == "student":
        ensure_student_record(u)
    db.session.commit()
    current_app.logger.info("User %s updated by %s", u.email, current_user.email)
    flash("User updated")
    return redirect(url_for("users.index"))

@bp.post("/<int:uid>/delete")
@login_required
@role_required("admin")
def delete_user(uid):
    u = db.session.get(User, uid)
    if not u:
        flash("User not found"); return redirect(url_for("users.index"))
    if u.id == current_user.id:
        flash("You cannot delete your own account")
        return redirect(url_for("users.index"))
    email = u.email
    db.session.delete(u); db.session.commit()
    current_app.logger.info("User %s deleted by %s", email, current_user.email)
    flash("User deleted")
    return redirect(url_for("users.index"))
