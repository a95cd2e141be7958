from flask import Blueprint

bp = Blueprint("subjects", __name__)

from . import routes  # noqa: E402,F401
