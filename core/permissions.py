# ============================================
# CENTRALIZED ROLE → PERMISSIONS MAP
# ============================================
# Permissions are "resource:action" strings. Scope (which hostel/floor)
# is enforced separately by services.role_scope; this map only says
# whether a role may attempt an action at all.
ROLE_PERMISSIONS = {

    # =====================================================
    # CHIEF WARDEN: Full access to everything
    # =====================================================
    "chief_warden": ["*"],

    # =====================================================
    # SUPERVISOR: one hostel
    # =====================================================
    "supervisor": [
        "dashboard:read",
        "issues:read", "issues:resolve",
        "students:read",
        "staff:read",
        "rooms:read",
        "search:run",
        "profile:write",
    ],

    # =====================================================
    # HOSTEL WARDEN: one hostel
    # =====================================================
    "hostel_warden": [
        "dashboard:read",
        "issues:read", "issues:resolve",
        "students:read",
        "staff:read",
        "rooms:read", "rooms:write",
        "search:run",
        "profile:write",
    ],

    # =====================================================
    # FLOOR WARDEN: assigned floors
    # =====================================================
    "floor_warden": [
        "dashboard:read",
        "issues:read", "issues:resolve",
        "students:read",
        "staff:read",
        "rooms:read", "rooms:write",
        "search:run",
        "profile:write",
    ],

    # =====================================================
    # FLOOR ATTENDANT: assigned floors, maintenance only
    # =====================================================
    "floor_attendant": [
        "dashboard:read",
        "issues:read", "issues:resolve",
        "rooms:read",
        "search:run",
        "profile:write",
    ],

    # =====================================================
    # STUDENT: self only
    # =====================================================
    "student": [
        "dashboard:read",
        "issues:read", "issues:create", "issues:resolve",
        "rooms:read",
        "profile:write",
    ],
}
