from ..extensions import db

class Announcement(db.Model):
    __tablename__ = "announcement"
    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    target_class_id = db.Column(db.Integer, db.ForeignKey("school_class.id", ondelete="CASCADE"))  # NULL = everyone
    title = db.Column(db.String(128), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    author = db.relationship("User")
    target_class = db.relationship("SchoolClass", back_populates="announcements")

class Incident(db.Model):
    __tablename__ = "incident"
    id = db.Column(db.Integer, primary_key=True)
    reporter_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id", ondelete="SET NULL"))
    date = db.Column(db.Date, nullable=False)
    type = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())

    reporter = db.relationship("User")
    student = db.relationship("Student", back_populates="incidents")
    subject = db.relationship("Subject")

class ImportLog(db.Model):
    __tablename__ = "import_log"
    id = db.Column(db.Integer, primary_key=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    file_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending|processed|failed
    error_message = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    processed_at = db.Column(db.DateTime)

    uploader = db.relationship("User")
