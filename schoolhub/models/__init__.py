from ..extensions import db
from .user import User, ROLES
from .people import Student
from .course import SchoolClass, Subject, TeacherAllocation, Schedule, Lesson
from .enrollment import Enrollment, Assessment, Grade, Attendance, ATTENDANCE_STATUSES
from .notice import Announcement, Incident, ImportLog

__all__ = [
    "User", "ROLES", "Student", "SchoolClass", "Subject", "TeacherAllocation",
    "Schedule", "Lesson", "Enrollment", "Assessment", "Grade", "Attendance",
    "ATTENDANCE_STATUSES", "Announcement", "Incident", "ImportLog",
]
