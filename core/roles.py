# ============================================
# ROLE → COLLECTION / LABEL MAPS
# ============================================
from models.enums import Role
from core import store


STAFF_ROLES = frozenset({
    Role.chief_warden,
    Role.supervisor,
    Role.hostel_warden,
    Role.floor_warden,
    Role.floor_attendant,
})

# Staff scoped to a single hostel
HOSTEL_ROLES = frozenset({Role.supervisor, Role.hostel_warden})

# Staff scoped to one or more floors
FLOOR_ROLES = frozenset({Role.floor_warden, Role.floor_attendant})


# =====================================================
# Collection holding each role's own profile document
# =====================================================
PROFILE_COLLECTIONS = {
    Role.chief_warden: store.CHIEF_WARDENS,
    Role.supervisor: store.SUPERVISORS,
    Role.hostel_warden: store.HOSTEL_WARDENS,
    Role.floor_warden: store.FLOOR_WARDENS,
    Role.floor_attendant: store.FLOOR_ATTENDANTS,
    Role.student: store.STUDENTS,
}

# Staff directories (chief wardens are not listed)
STAFF_COLLECTIONS = {
    Role.supervisor: store.SUPERVISORS,
    Role.hostel_warden: store.HOSTEL_WARDENS,
    Role.floor_warden: store.FLOOR_WARDENS,
    Role.floor_attendant: store.FLOOR_ATTENDANTS,
}


# =====================================================
# Human-readable labels (search result `type`)
# =====================================================
ROLE_LABELS = {
    Role.chief_warden: "Chief Warden",
    Role.supervisor: "Supervisor",
    Role.hostel_warden: "Hostel Warden",
    Role.floor_warden: "Floor Warden",
    Role.floor_attendant: "Floor Attendant",
    Role.student: "Student",
}


def is_staff(role) -> bool:
    return role in STAFF_ROLES
