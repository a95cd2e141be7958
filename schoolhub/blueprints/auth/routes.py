from flask import render_template, request, redirect, url_for, flash, current_app
from flask_login import login_user, logout_user, login_required, current_user
from ...extensions import db
from ...models.user import User
from . import bp

@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("dashboard.home"))
    if request.method == "POST":
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")
        u = User.query.filter_by(email=email).one_or_none()
        if u and u.check_password(password):
            if not u.active:
                current_app.logger.warning("Login refused for inactive account %s", email)
                flash("Account is inactive")
                return render_template("login.html", email=email), 403
            login_user(u)
            current_app.logger.info("User %s signed in", email)
            return redirect(url_for("dashboard.home"))
        current_app.logger.warning("Failed login for %s", email)
        flash("Invalid email or password")
    return render_template("login.html", email=request.form.get("email", ""))

@bp.get("/logout")
@login_required
def logout():
    logout_user()
    flash("You have been signed out")
    return redirect(url_for("auth.login"))

@bp.route("/account", methods=["GET", "POST"])
@login_required
def account():
    u = current_user
    if request.method == "POST":
        old = request.form.get("old_password", "")
        new = request.form.get("new_password", "")
        confirm = request.form.get("confirm_password", "")
        if not u.check_password(old):
            flash("Current password is incorrect")
        elif len(new) < 6:
            flash("New password must be at least 6 characters")
        elif new != confirm:
            flash("Passwords do not match")
        else:
            u.set_password(new)
            db.session.commit()
            flash("Password updated")
            return redirect(url_for("auth.account"))
    return render_template("account.html", user=u)
