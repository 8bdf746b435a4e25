from app.core.models.school import School
from app.core.models.academic_year import AcademicYear
from app.core.models.grade_level import GradeLevel
from app.core.models.section_model import Section
from app.core.models.subject import Subject
from app.core.models.teacher import Teacher
from app.core.models.period import Period
from app.core.models.student import Student
from app.core.models.teacher_subject_assignment import TeacherSubjectAssignment
from app.core.models.timetable import TimetableEntry
from app.core.models.attendance_record import AttendanceRecord

__all__ = [
    "AcademicYear",
    "AttendanceRecord",
    "GradeLevel",
    "Period",
    "School",
    "Section",
    "Student",
    "Subject",
    "Teacher",
    "TeacherSubjectAssignment",
    "TimetableEntry",
]
