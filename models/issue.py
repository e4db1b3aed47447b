from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import IssueStatus, IssueType


# -------------------------------------------------
# Location details a student may attach to an issue
# -------------------------------------------------
class HostelDetails(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    hostel: Optional[str] = None
    hostel_id: Optional[str] = Field(None, alias="hostelId")
    floor: Optional[str] = None
    room_number: Optional[str] = Field(None, alias="roomNumber")


# -------------------------------------------------
# POST /issues
# -------------------------------------------------
class IssueCreate(BaseModel):
    """
    Every field is optional at the schema level so that missing fields are
    reported as 400 with the field named, not as a generic 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    content: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    hostel_details: Optional[HostelDetails] = Field(None, alias="hostelDetails")


# -------------------------------------------------
# PATCH /issues
# -------------------------------------------------
class IssueSolvedUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    issue_id: Optional[str] = Field(None, alias="issueId")
    solved: Optional[bool] = None


# -------------------------------------------------
# Canonical issue (output of the normalizer)
# -------------------------------------------------
class Issue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: IssueType
    message: str = ""
    timestamp_utc: int = Field(..., alias="timestampUtc", description="Epoch milliseconds")
    author_id: Optional[str] = Field(None, alias="authorId")
    student_id: Optional[str] = Field(None, alias="studentId")
    student_name: Optional[str] = Field(None, alias="studentName")
    hostel: Optional[str] = None
    floor: Optional[str] = None
    room: Optional[str] = None
    category: Optional[str] = None
    solved: bool = False
    status: IssueStatus = IssueStatus.open
    complete_date: Optional[str] = Field(None, alias="completeDate")

    # provenance
    source: str = "embedded"
    parent_id: Optional[str] = Field(None, alias="parentId")

    @model_validator(mode="after")
    def check_invariants(self):
        if self.solved != (self.status == IssueStatus.resolved):
            raise ValueError("solved and status disagree")
        if (self.category is not None) != (self.type == IssueType.maintenance):
            raise ValueError("category must be present iff type is maintenance")
        return self

    def as_record(self) -> dict:
        """camelCase JSON-safe dict (API payloads, embedded array elements)."""
        return self.model_dump(by_alias=True, mode="json")
