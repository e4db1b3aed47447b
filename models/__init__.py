# -------------------------
# Enums
# -------------------------
from .enums import (
    Role,
    IssueType,
    IssueStatus,
    IssueStatusFilter,
    SourceKind,
    SearchFilter,
)

# -------------------------
# Identity Models
# -------------------------
from .identity import (
    Identity,
    IdentityScope,
)

# -------------------------
# Issue Models
# -------------------------
from .issue import (
    HostelDetails,
    Issue,
    IssueCreate,
    IssueSolvedUpdate,
)

# -------------------------
# Profile Models
# -------------------------
from .profile import (
    ProfileUpdate,
    ProfilePictureUpload,
)
