from models.grade_section import GradeSection
from models.schedule_entry import (
    NewScheduleEntry,
    ScheduleEntry,
    ScheduleEntryPatch,
)
from models.logical_class import (
    GradeSectionSchedule,
    LogicalClass,
    LogicalClassEdit,
    Schedule,
)
from models.subject import Subject
from models.teacher import Teacher
from models.student import Student
from models.timeslot import DAYS_OF_WEEK, TimeRange

__all__ = [
    "GradeSection",
    "NewScheduleEntry",
    "ScheduleEntry",
    "ScheduleEntryPatch",
    "GradeSectionSchedule",
    "LogicalClass",
    "LogicalClassEdit",
    "Schedule",
    "Subject",
    "Teacher",
    "Student",
    "DAYS_OF_WEEK",
    "TimeRange",
]
