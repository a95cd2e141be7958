from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from ..extensions import db

ROLES = ("admin", "coord", "teacher", "student")

class User(UserMixin, db.Model):
    __tablename__ = "user"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    full_name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="student")
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(),
                           onupdate=db.func.now())
    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'coord', 'teacher', 'student')",
                           name="ck_user_role"),
    )

    student = db.relationship("Student", back_populates="profile", uselist=False,
                              cascade="all, delete-orphan")
    coordinated_classes = db.relationship("SchoolClass", back_populates="coord")
    allocations = db.relationship("TeacherAllocation", back_populates="teacher",
                                  cascade="all, delete-orphan")
    schedules = db.relationship("Schedule", back_populates="teacher",
                                cascade="all, delete-orphan")

    @property
    def is_active(self):
        return bool(self.active)

    @property
    def first_name(self):
        parts = (self.full_name or "").split()
        return parts[0] if parts else "User"

    def set_password(self, raw):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw):
        return check_password_hash(self.password_hash, raw)
