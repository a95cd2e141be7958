from ..extensions import db

class Student(db.Model):
    __tablename__ = "student"
    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("user.id"), unique=True, nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id", ondelete="SET NULL"))
    ra = db.Column(db.String(32), unique=True, nullable=False)   # enrollment number
    birth_date = db.Column(db.Date)
    phone = db.Column(db.String(32))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())

    profile = db.relationship("User", back_populates="student")
    school_class = db.relationship("SchoolClass", back_populates="students")
    enrollments = db.relationship("Enrollment", back_populates="student",
                                  cascade="all, delete-orphan")
    grades = db.relationship("Grade", back_populates="student",
                             cascade="all, delete-orphan")
    attendance = db.relationship("Attendance", back_populates="student",
                                 cascade="all, delete-orphan")
    incidents = db.relationship("Incident", back_populates="student",
                                cascade="all, delete-orphan")

    @property
    def full_name(self):
        return self.profile.full_name

    @property
    def email(self):
        return self.profile.email

    @property
    def class_name(self):
        return self.school_class.name if self.school_class else "No class"
