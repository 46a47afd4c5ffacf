from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class CanonicalField(str, Enum):
    MODULE_NAME = "module_name"
    MEDIA_TITLE = "media_title"
    METRIC = "metric"
    VIEWER_COUNT = "viewer_count"
    TOTAL_STUDENTS = "total_students"
    ASSIGNMENT_COUNT = "assignment_count"
    AVERAGE_VIEW_PERCENT = "average_view_percent"
    OVERALL_VIEW_PERCENT = "overall_view_percent"
    STUDENTS_VIEWING_PERCENT = "students_viewing_percent"
    VIDEO_VIEWED_OVERALL_PERCENT = "video_viewed_overall_percent"
    TURNED_IN_PERCENT = "turned_in_percent"
    EXCLUDING_ZEROES_AVERAGE = "excluding_zeroes_average"


class FieldKind(str, Enum):
    TEXT = "text"
    COUNT = "count"
    NUMBER = "number"
    PERCENT = "percent"


FIELD_KINDS: Dict[CanonicalField, FieldKind] = {
    CanonicalField.MODULE_NAME: FieldKind.TEXT,
    CanonicalField.MEDIA_TITLE: FieldKind.TEXT,
    CanonicalField.METRIC: FieldKind.TEXT,
    CanonicalField.VIEWER_COUNT: FieldKind.COUNT,
    CanonicalField.TOTAL_STUDENTS: FieldKind.COUNT,
    CanonicalField.ASSIGNMENT_COUNT: FieldKind.COUNT,
    CanonicalField.AVERAGE_VIEW_PERCENT: FieldKind.PERCENT,
    CanonicalField.OVERALL_VIEW_PERCENT: FieldKind.PERCENT,
    CanonicalField.STUDENTS_VIEWING_PERCENT: FieldKind.PERCENT,
    CanonicalField.VIDEO_VIEWED_OVERALL_PERCENT: FieldKind.PERCENT,
    CanonicalField.TURNED_IN_PERCENT: FieldKind.PERCENT,
    CanonicalField.EXCLUDING_ZEROES_AVERAGE: FieldKind.PERCENT,
}

# Ordered per field; the first column present in a row set wins.
ColumnCandidateMap = Dict[CanonicalField, Tuple[str, ...]]

DEFAULT_CANDIDATES: ColumnCandidateMap = {
    CanonicalField.MODULE_NAME: ("Module", "Module Name", "Module Title", "module"),
    CanonicalField.MEDIA_TITLE: ("Media Title", "Media Name", "Video Title", "Title"),
    CanonicalField.METRIC: ("Metric",),
    CanonicalField.VIEWER_COUNT: ("# of Students Viewing", "# of Unique Viewers", "Unique Viewers"),
    CanonicalField.TOTAL_STUDENTS: ("# of Students", "Number of Students", "Total Students", "Enrollment"),
    CanonicalField.ASSIGNMENT_COUNT: ("n_assignments", "# of Assignments"),
    CanonicalField.AVERAGE_VIEW_PERCENT: ("Average View %", "Average % Viewed", "Average Viewed %", "Avg View %"),
    CanonicalField.OVERALL_VIEW_PERCENT: ("Overall View %", "Avg Overall View %"),
    CanonicalField.STUDENTS_VIEWING_PERCENT: ("% of Students Viewing",),
    CanonicalField.VIDEO_VIEWED_OVERALL_PERCENT: ("% of Video Viewed Overall",),
    CanonicalField.TURNED_IN_PERCENT: ("Avg % Turned In", "% Turned In"),
    CanonicalField.EXCLUDING_ZEROES_AVERAGE: (
        "Avg Average Excluding Zeros",
        "Average Excluding Zeros",
        "Avg Average Excluding Zeroes",
    ),
}


def field_kind(field: CanonicalField) -> FieldKind:
    return FIELD_KINDS.get(field, FieldKind.TEXT)


def is_numeric_field(field: CanonicalField) -> bool:
    return field_kind(field) is not FieldKind.TEXT
