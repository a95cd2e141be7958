import logging

from flask import Flask, render_template, request, redirect, url_for, flash
from flask.logging import default_handler
from flask_login import current_user
from flask_wtf.csrf import CSRFError

from .extensions import db, migrate, login_manager, csrf

WEEKDAY_NAMES = {1: "Monday", 2: "Tuesday", 3: "Wednesday", 4: "Thursday",
                 5: "Friday", 6: "Saturday", 7: "Sunday"}

def register_filters(app):
    from .stats import score_band
    from .permissions import role_label

    @app.template_filter("weekday_name")
    def weekday_name(n):
        try:
            return WEEKDAY_NAMES[int(n)]
        except (KeyError, TypeError, ValueError):
            return str(n)

    @app.template_filter("hhmm")
    def hhmm(t):
        return t.strftime("%H:%M") if t else ""

    app.add_template_filter(score_band, "score_band")
    app.add_template_filter(role_label, "role_label")

def register_context(app):
    from .permissions import can, menu_for

    @app.context_processor
    def inject_permissions():
        role = current_user.role if current_user.is_authenticated else None
        return {
            "can": lambda action: role is not None and can(role, action),
            "menu": menu_for(role) if role else [],
        }

def register_error_handlers(app):
    @app.errorhandler(403)
    def forbidden(error):
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def not_found(error):
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        return render_template("errors/500.html"), 500

    @app.errorhandler(CSRFError)
    def csrf_error(error):
        app.logger.warning("CSRF failure on %s: %s", request.path, error.description)
        flash("The form expired, please try again")
        return redirect(request.referrer or url_for("dashboard.home"))

def configure_logging(app):
    default_handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"))
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Please sign in to continue"

    from . import models
    from .models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from .blueprints.auth import bp as auth_bp
    from .blueprints.dashboard import bp as dashboard_bp
    from .blueprints.users import bp as users_bp
    from .blueprints.classes import bp as classes_bp
    from .blueprints.students import bp as students_bp
    from .blueprints.subjects import bp as subjects_bp
    from .blueprints.grades import bp as grades_bp
    from .blueprints.schedule import bp as schedule_bp
    from .blueprints.reports import bp as reports_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(classes_bp, url_prefix="/classes")
    app.register_blueprint(students_bp, url_prefix="/students")
    app.register_blueprint(subjects_bp, url_prefix="/subjects")
    app.register_blueprint(grades_bp, url_prefix="/grades")
    app.register_blueprint(schedule_bp, url_prefix="/schedule")
    app.register_blueprint(reports_bp, url_prefix="/reports")
    register_filters(app)
    register_context(app)
    register_error_handlers(app)

    from .commands import init_db, create_admin
    app.cli.add_command(init_db)
    app.cli.add_command(create_admin)

    return app
