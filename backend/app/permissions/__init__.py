# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    REQUEST_PERMISSIONS,
    OPERATIONS_PERMISSIONS,
    DOCUMENT_PERMISSIONS,
    REPORTING_PERMISSIONS,
    USER_PERMISSIONS,
    PROJECT_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "REQUEST_PERMISSIONS",
    "OPERATIONS_PERMISSIONS",
    "DOCUMENT_PERMISSIONS",
    "REPORTING_PERMISSIONS",
    "USER_PERMISSIONS",
    "PROJECT_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
]
