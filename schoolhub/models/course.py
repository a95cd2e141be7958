from ..extensions import db

class SchoolClass(db.Model):
    __tablename__ = "school_class"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    coord_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())
    __table_args__ = (
        db.UniqueConstraint("name", "year", name="uq_class_name_year"),
    )

    coord = db.relationship("User", back_populates="coordinated_classes")
    # no delete cascade: students lose their class, the rows stay
    students = db.relationship("Student", back_populates="school_class")
    enrollments = db.relationship("Enrollment", back_populates="school_class",
                                  cascade="all, delete-orphan")
    allocations = db.relationship("TeacherAllocation", back_populates="school_class",
                                  cascade="all, delete-orphan")
    schedules = db.relationship("Schedule", back_populates="school_class",
                                cascade="all, delete-orphan")
    assessments = db.relationship("Assessment", back_populates="school_class",
                                  cascade="all, delete-orphan")
    lessons = db.relationship("Lesson", back_populates="school_class",
                              cascade="all, delete-orphan")
    announcements = db.relationship("Announcement", back_populates="target_class",
                                    cascade="all, delete-orphan")

    @property
    def coord_name(self):
        return self.coord.full_name if self.coord else "No coordinator"

class Subject(db.Model):
    __tablename__ = "subject"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False)
    description = db.Column(db.Text)
    workload_hours = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())
    __table_args__ = (
        db.CheckConstraint("workload_hours >= 1 AND workload_hours <= 40",
                           name="ck_workload_1_40"),
    )

    allocations = db.relationship("TeacherAllocation", back_populates="subject",
                                  cascade="all, delete-orphan")
    schedules = db.relationship("Schedule", back_populates="subject",
                                cascade="all, delete-orphan")
    assessments = db.relationship("Assessment", back_populates="subject",
                                  cascade="all, delete-orphan")
    lessons = db.relationship("Lesson", back_populates="subject",
                              cascade="all, delete-orphan")
    attendance = db.relationship("Attendance", back_populates="subject",
                                 cascade="all, delete-orphan")

class TeacherAllocation(db.Model):
    __tablename__ = "teacher_allocation"
    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id"), nullable=False)
    __table_args__ = (
        db.UniqueConstraint("teacher_id", "class_id", "subject_id", name="uq_allocation"),
    )

    teacher = db.relationship("User", back_populates="allocations")
    school_class = db.relationship("SchoolClass", back_populates="allocations")
    subject = db.relationship("Subject", back_populates="allocations")

class Schedule(db.Model):
    __tablename__ = "schedule"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id"), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False)  # 1=Mon ... 5=Fri
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    room = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    __table_args__ = (
        db.CheckConstraint("day_of_week >= 1 AND day_of_week <= 5", name="ck_day_1_5"),
    )

    school_class = db.relationship("SchoolClass", back_populates="schedules")
    subject = db.relationship("Subject", back_populates="schedules")
    teacher = db.relationship("User", back_populates="schedules")

    def overlaps(self, other):
        if self.day_of_week != other.day_of_week:
            return False
        return not (self.end_time <= other.start_time or other.end_time <= self.start_time)

class Lesson(db.Model):
    __tablename__ = "lesson"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    topic = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    school_class = db.relationship("SchoolClass", back_populates="lessons")
    subject = db.relationship("Subject", back_populates="lessons")
