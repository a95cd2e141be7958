import csv
from io import StringIO

from flask import render_template, request, Response, abort, current_app
from flask_login import login_required, current_user
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import SchoolClass, Student, User
from ...permissions import role_required
from ...utils import parse_date, today
from ... import stats
from . import bp

@bp.get("/")
@login_required
@role_required("admin", "coord")
def index():
    classes = SchoolClass.query.order_by(SchoolClass.year.desc(), SchoolClass.name).all()
    class_id = request.args.get("class_id", type=int)
    end = parse_date(request.args.get("end")) or today()
    start = parse_date(request.args.get("start")) or end.replace(day=1)
    attendance = None
    selected = db.session.get(SchoolClass, class_id) if class_id else None
    if selected is not None:
        if start > end:
            start, end = end, start
        attendance = stats.attendance_summary(selected.id, start, end)
    return render_template("reports.html",
        counts=stats.dashboard_counts(),
        by_year=stats.classes_by_year(),
        performance=stats.subject_performance(),
        classes=classes, selected=selected, start=start, end=end,
        attendance=attendance,
    )

def students_rows():
    yield ["RA", "Name", "Email", "Class", "Year"]
    items = (Student.query.options(selectinload(Student.profile), selectinload(Student.school_class))
             .join(User, Student.profile_id == User.id).order_by(User.full_name).all())
    for s in items:
        yield [s.ra, s.full_name, s.email, s.class_name,
               s.school_class.year if s.school_class else ""]

def teachers_rows():
    yield ["Name", "Email", "Active", "Classes", "Subjects"]
    for t in User.query.filter_by(role="teacher").order_by(User.full_name).all():
        classes = sorted({a.school_class.name for a in t.allocations})
        subjects = sorted({a.subject.name for a in t.allocations})
        yield [t.full_name, t.email, "yes" if t.active else "no",
               "; ".join(classes), "; ".join(subjects)]

def classes_rows():
    yield ["Class", "Year", "Coordinator", "Students", "Weekly lessons"]
    for c in SchoolClass.query.order_by(SchoolClass.year.desc(), SchoolClass.name).all():
        yield [c.name, c.year, c.coord_name, len(c.students), len(c.schedules)]

def performance_rows():
    yield ["Subject", "Average", "Grades"]
    for row in stats.subject_performance():
        yield [row["subject"], f"{row['average']:.2f}", row["grades"]]

EXPORTS = {
    "students": students_rows,
    "teachers": teachers_rows,
    "classes": classes_rows,
    "performance": performance_rows,
}

@bp.get("/export/<kind>.csv")
@login_required
@role_required("admin", "coord")
def export(kind):
    rows = EXPORTS.get(kind)
    if rows is None:
        abort(404)
    output = StringIO()
    writer = csv.writer(output)
    writer.writerows(rows())
    filename = f"{kind}_report_{today().isoformat()}.csv"
    current_app.logger.info("Report %s exported by %s", kind, current_user.email)
    return Response(
        output.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
