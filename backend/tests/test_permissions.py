"""
Permission catalogue consistency.
"""

import pytest

from app.decorators import require_any_permission, require_permission
from app.models import USER_ROLES
from app.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCategory,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    validate_permission_code,
)


def test_codes_are_unique():
    codes = get_all_permission_codes()
    assert len(codes) == len(set(codes))


@pytest.mark.parametrize("role", USER_ROLES)
def test_every_role_grant_is_defined(role):
    granted = DEFAULT_ROLE_PERMISSIONS[role]
    assert granted
    assert all(validate_permission_code(code) for code in granted)


def test_every_category_is_populated():
    categories = [v for k, v in vars(PermissionCategory).items() if k.isupper()]
    for category in categories:
        assert get_permissions_by_category(category), category


def test_definition_lookup():
    definition = get_permission_definition("COMPLETE_TRAVEL_REQUEST")
    assert definition["category"] == PermissionCategory.OPERATIONS
    assert get_permission_definition("APPROVE_EXPENSE_CLAIM") is None
    assert not validate_permission_code("APPROVE_EXPENSE_CLAIM")


def test_only_admin_manages_users():
    holders = {role for role, codes in DEFAULT_ROLE_PERMISSIONS.items() if "MANAGE_USERS" in codes}
    assert holders == {"admin"}


@pytest.mark.parametrize(
    "make_decorator",
    [
        lambda: require_permission("APPROVE_EXPENSE_CLAIM"),
        lambda: require_any_permission("VIEW_BUDGETS", "APPROVE_EXPENSE_CLAIM"),
    ],
)
def test_decorators_reject_unknown_codes(make_decorator):
    with pytest.raises(ValueError, match="APPROVE_EXPENSE_CLAIM"):
        make_decorator()
