from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]

    @classmethod
    def parse(cls, value):
        """Case-insensitive lookup; returns None for unknown/empty values."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for item in cls:
            if item.value == text:
                return item
        return None


# -----------------------------------------------------
# ROLE
# -----------------------------------------------------
class Role(BaseStrEnum):
    """Every identity resolves to exactly one of these (or to no role)."""

    chief_warden = "chief_warden"
    supervisor = "supervisor"
    hostel_warden = "hostel_warden"
    floor_warden = "floor_warden"
    floor_attendant = "floor_attendant"
    student = "student"


# -----------------------------------------------------
# ISSUE TYPE
# -----------------------------------------------------
class IssueType(BaseStrEnum):
    complaint = "complaint"
    maintenance = "maintenance"


# -----------------------------------------------------
# ISSUE STATUS
# -----------------------------------------------------
class IssueStatus(BaseStrEnum):
    """Always agrees with `solved`: resolved <=> solved."""

    open = "open"
    resolved = "resolved"


# -----------------------------------------------------
# ISSUE STATUS FILTER (GET /issues?status=)
# -----------------------------------------------------
class IssueStatusFilter(BaseStrEnum):
    pending = "pending"
    solved = "solved"
    all = "all"


# -----------------------------------------------------
# WHERE A RAW ISSUE RECORD CAME FROM
# -----------------------------------------------------
class SourceKind(BaseStrEnum):
    embedded_issue = "embedded_issue"
    embedded_complaint = "embedded_complaint"
    embedded_maintenance = "embedded_maintenance"
    standalone = "standalone"


# -----------------------------------------------------
# SEARCH FILTER
# -----------------------------------------------------
class SearchFilter(BaseStrEnum):
    all = "all"
    students = "students"
    supervisors = "supervisors"
    hostel_wardens = "hostel_wardens"
    floor_wardens = "floor_wardens"
    floor_attendants = "floor_attendants"
    issues = "issues"
