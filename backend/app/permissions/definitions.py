# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- REQUESTS --

REQUEST_PERMISSIONS = [
    (
        "SUBMIT_TRAVEL_REQUEST",
        "Submit Travel Request",
        "Create travel requests for yourself or a team member",
        PermissionCategory.REQUESTS,
    ),
    (
        "VIEW_OWN_REQUESTS",
        "View Own Requests",
        "View travel requests you submitted",
        PermissionCategory.REQUESTS,
    ),
    (
        "VIEW_ALL_REQUESTS",
        "View All Requests",
        "View every travel request regardless of requester",
        PermissionCategory.REQUESTS,
    ),
    (
        "APPROVE_TRAVEL_REQUEST",
        "Approve Travel Request",
        "Approve or reject submitted travel requests",
        PermissionCategory.REQUESTS,
    ),
    (
        "CANCEL_ANY_REQUEST",
        "Cancel Any Request",
        "Cancel submitted requests raised by other users",
        PermissionCategory.REQUESTS,
    ),
]


# -- OPERATIONS --

OPERATIONS_PERMISSIONS = [
    (
        "VIEW_ASSIGNED_REQUESTS",
        "View Assigned Requests",
        "View approved requests assigned to your operations team",
        PermissionCategory.OPERATIONS,
    ),
    (
        "MANAGE_BOOKINGS",
        "Manage Bookings",
        "Record flight, hotel, car and per diem bookings",
        PermissionCategory.OPERATIONS,
    ),
    (
        "COMPLETE_TRAVEL_REQUEST",
        "Complete Travel Request",
        "Mark approved requests as completed by operations",
        PermissionCategory.OPERATIONS,
    ),
]


# -- DOCUMENTS --

DOCUMENT_PERMISSIONS = [
    (
        "MANAGE_DOCUMENTS",
        "Manage Employee Documents",
        "Create, edit and delete passports, visas and IDs",
        PermissionCategory.DOCUMENTS,
    ),
]


# -- REPORTING --

REPORTING_PERMISSIONS = [
    (
        "VIEW_BUDGETS",
        "View Budgets",
        "View per-person and per-project travel spend",
        PermissionCategory.REPORTING,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create, edit and deactivate user accounts",
        PermissionCategory.USERS,
    ),
    (
        "SWITCH_ROLE",
        "Switch Role",
        "View the application as another role",
        PermissionCategory.USERS,
    ),
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "View permission denials, role switches and deactivations",
        PermissionCategory.USERS,
    ),
]


# -- PROJECTS --

PROJECT_PERMISSIONS = [
    (
        "SYNC_PROJECTS",
        "Sync Projects",
        "Create projects and pull missing projects from the roster provider",
        PermissionCategory.PROJECTS,
    ),
]


PERMISSION_DEFINITIONS = (
    REQUEST_PERMISSIONS
    + OPERATIONS_PERMISSIONS
    + DOCUMENT_PERMISSIONS
    + REPORTING_PERMISSIONS
    + USER_PERMISSIONS
    + PROJECT_PERMISSIONS
)
