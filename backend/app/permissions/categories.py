# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    REQUESTS = "REQUESTS"
    OPERATIONS = "OPERATIONS"
    DOCUMENTS = "DOCUMENTS"
    REPORTING = "REPORTING"
    USERS = "USERS"
    PROJECTS = "PROJECTS"
