# Import all models to ensure they're registered with SQLAlchemy
from gradebook.models.schools import AcademicYear, Department, Class, Subject, ClassSubject, SponsorClassAssignment
from gradebook.models.users import Teacher, Student
from gradebook.models.academics import AssessmentType, StudentGrade, StudentPeriodTotal, StudentYearlyTotal
