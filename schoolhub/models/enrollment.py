from ..extensions import db

ATTENDANCE_STATUSES = ("present", "absent", "justified")

class Enrollment(db.Model):
    __tablename__ = "enrollment"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    __table_args__ = (
        db.UniqueConstraint("student_id", "class_id", name="uq_student_class"),
    )

    student = db.relationship("Student", back_populates="enrollments")
    school_class = db.relationship("SchoolClass", back_populates="enrollments")

class Assessment(db.Model):
    __tablename__ = "assessment"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id"), nullable=False)
    name = db.Column(db.String(64), nullable=False)        # exam, assignment...
    date = db.Column(db.Date, nullable=False)
    max_score = db.Column(db.Float, nullable=False, default=10.0)
    weight = db.Column(db.Float, nullable=False, default=1.0)
    bimester = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())
    __table_args__ = (
        db.UniqueConstraint("class_id", "subject_id", "name", name="uq_assessment_name"),
        db.CheckConstraint("max_score > 0", name="ck_max_score_positive"),
        db.CheckConstraint("weight > 0", name="ck_weight_positive"),
        db.CheckConstraint("bimester >= 1 AND bimester <= 4", name="ck_bimester_1_4"),
    )

    school_class = db.relationship("SchoolClass", back_populates="assessments")
    subject = db.relationship("Subject", back_populates="assessments")
    grades = db.relationship("Grade", back_populates="assessment",
                             cascade="all, delete-orphan")

class Grade(db.Model):
    __tablename__ = "grade"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    assessment_id = db.Column(db.Integer, db.ForeignKey("assessment.id"), nullable=False)
    score = db.Column(db.Float)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())
    __table_args__ = (
        db.UniqueConstraint("student_id", "assessment_id", name="uq_student_assessment"),
    )

    student = db.relationship("Student", back_populates="grades")
    assessment = db.relationship("Assessment", back_populates="grades")

class Attendance(db.Model):
    __tablename__ = "attendance"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="present")
    justification = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    __table_args__ = (
        db.UniqueConstraint("student_id", "subject_id", "date", name="uq_attendance_day"),
        db.CheckConstraint("status IN ('present', 'absent', 'justified')",
                           name="ck_attendance_status"),
    )

    student = db.relationship("Student", back_populates="attendance")
    subject = db.relationship("Subject", back_populates="attendance")
