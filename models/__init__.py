from models.category import GradeCategory
from models.lesson import Lesson, GradingPeriodMarker
from models.subject import Subject
from models.student import Student
from models.grade import Grade
from models.gradebook import Gradebook

__all__ = [
    "GradeCategory",
    "Lesson",
    "GradingPeriodMarker",
    "Subject",
    "Student",
    "Grade",
    "Gradebook",
]
