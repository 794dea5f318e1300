from models.student import (
    AcademicLevel,
    BehaviorLevel,
    Gender,
    PlacementRequest,
    RequestKind,
    Student,
)
from models.teacher import Teacher
from models.class_bucket import ClassBucket
from models.class_list import ClassList, ReadinessReport
from models.survey import ParentRequest, RequestStatus, SurveyStatus, TeacherSurvey
from models.school_data import SchoolData

__all__ = [
    "AcademicLevel",
    "BehaviorLevel",
    "Gender",
    "PlacementRequest",
    "RequestKind",
    "Student",
    "Teacher",
    "ClassBucket",
    "ClassList",
    "ReadinessReport",
    "ParentRequest",
    "RequestStatus",
    "SurveyStatus",
    "TeacherSurvey",
    "SchoolData",
]
