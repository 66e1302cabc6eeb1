# Overview: Default permission sets per user role.

_OPERATIONS = {
    "VIEW_ASSIGNED_REQUESTS",
    "MANAGE_BOOKINGS",
    "COMPLETE_TRAVEL_REQUEST",
    "MANAGE_DOCUMENTS",
    "VIEW_BUDGETS",
}

DEFAULT_ROLE_PERMISSIONS = {
    "manager": {
        "SUBMIT_TRAVEL_REQUEST",
        "VIEW_OWN_REQUESTS",
        "SYNC_PROJECTS",
    },
    "pm": {
        "SUBMIT_TRAVEL_REQUEST",
        "VIEW_OWN_REQUESTS",
        "VIEW_ALL_REQUESTS",
        "APPROVE_TRAVEL_REQUEST",
        "SYNC_PROJECTS",
    },
    "operations_ksa": set(_OPERATIONS),
    "operations_uae": set(_OPERATIONS),
    "admin": {
        "VIEW_OWN_REQUESTS",
        "VIEW_ALL_REQUESTS",
        "APPROVE_TRAVEL_REQUEST",
        "CANCEL_ANY_REQUEST",
        "MANAGE_USERS",
        "SWITCH_ROLE",
        "VIEW_AUDIT_LOG",
        "MANAGE_DOCUMENTS",
        "VIEW_BUDGETS",
        "SYNC_PROJECTS",
    },
}
