import pytest
from shopadmin.constants.permissions import (
    ROLES, ROLE_HIERARCHY, ROLE_PERMISSIONS, ALL_PERMISSION_CODES, RESOURCE_ACTIONS,
    SUPER_ADMIN, ADMIN, MANAGER, STAFF, VIEWER, PERMISSION_DENIED_MESSAGES, SUPER_ADMIN_ONLY_MESSAGE,
)
from shopadmin.services.policy import (
    has_permission, has_any_permission, has_all_permissions, get_permission_denied_message,
    has_role_at_least, can_access_page, can_access, get_available_roles, can_manage_user_role,
    effective_permissions, is_admin,
)


def test_role_hierarchy_is_strictly_ordered():
    levels = [ROLE_HIERARCHY[r] for r in ROLES]
    assert levels == sorted(levels, reverse=True)
    assert ROLE_HIERARCHY[VIEWER] == 1 and ROLE_HIERARCHY[SUPER_ADMIN] == 5


def test_role_permission_entries_reference_known_resources():
    for role, entries in ROLE_PERMISSIONS.items():
        for entry in entries:
            resource, action = entry.split(':', 1)
            if resource == '*':
                continue
            assert resource in RESOURCE_ACTIONS, (role, entry)
            assert action == '*' or action in RESOURCE_ACTIONS[resource], (role, entry)


def test_super_admin_has_everything():
    assert all(has_permission(SUPER_ADMIN, *code.split(':')) for code in ALL_PERMISSION_CODES)
    assert has_permission(SUPER_ADMIN, 'ANYTHING', 'GOES')


@pytest.mark.parametrize('role,resource,action,expected', [
    (ADMIN, 'PRODUCTS', 'DELETE', True),
    (ADMIN, 'ROLES', 'READ', False),
    (ADMIN, 'USERS', 'MANAGE_ROLES', False),
    (MANAGER, 'COUPONS', 'CREATE', True),
    (MANAGER, 'SETTINGS', 'READ', False),
    (MANAGER, 'REPORTS', 'EXPORT', False),
    (STAFF, 'PRODUCTS', 'UPDATE', True),
    (STAFF, 'PRODUCTS', 'CREATE', False),
    (STAFF, 'CAMPAIGNS', 'READ', False),
    (VIEWER, 'REPORTS', 'READ', True),
    (VIEWER, 'ORDERS', 'UPDATE', False),
    (None, 'DASHBOARD', 'READ', False),
    ('UNKNOWN', 'DASHBOARD', 'READ', False),
])
def test_has_permission_table(role, resource, action, expected):
    assert has_permission(role, resource, action) is expected


def test_wildcard_resource_grants_every_action():
    for action in RESOURCE_ACTIONS['ORDERS']:
        assert has_permission(MANAGER, 'ORDERS', action)


def test_any_and_all_permission_helpers():
    perms = [('PRODUCTS', 'READ'), ('PRODUCTS', 'DELETE')]
    assert has_any_permission(STAFF, perms)
    assert not has_all_permissions(STAFF, perms)
    assert has_all_permissions(ADMIN, perms)
    assert not has_any_permission(VIEWER, [('SETTINGS', 'READ')])


def test_denied_message_prefers_specific_text():
    assert get_permission_denied_message('PRODUCTS', 'DELETE') == PERMISSION_DENIED_MESSAGES['PRODUCTS']['DELETE']
    generic = get_permission_denied_message('BRANDS', 'DELETE')
    assert 'DELETE' in generic and 'BRANDS' in generic


def test_has_role_at_least():
    assert has_role_at_least(ADMIN, MANAGER)
    assert has_role_at_least(MANAGER, MANAGER)
    assert not has_role_at_least(STAFF, MANAGER)
    assert not has_role_at_least(None, VIEWER)


def test_can_access_page():
    assert can_access_page(VIEWER, '/dashboard')
    assert can_access_page(VIEWER, '/dashboard/products/')
    assert not can_access_page(VIEWER, '/dashboard/settings')
    assert not can_access_page(STAFF, '/dashboard/products/add')
    assert can_access_page(ADMIN, '/dashboard/products/add')
    # pages without a requirement are open to any signed-in role
    assert can_access_page(VIEWER, '/dashboard/help')


def test_can_access_features():
    assert can_access(SUPER_ADMIN, 'settings.edit')
    assert can_access(ADMIN, 'users.delete')
    assert can_access(STAFF, 'inventory.adjust')
    assert not can_access(VIEWER, 'marketing.view')
    assert not can_access(MANAGER, 'products.view')
    assert not can_access(ADMIN, 'no.such.feature')


def test_available_roles_are_at_or_below_caller():
    assert get_available_roles(SUPER_ADMIN) == ROLES
    assert get_available_roles(MANAGER) == [MANAGER, STAFF, VIEWER]
    assert get_available_roles(None) == []


def test_only_super_admin_manages_roles():
    assert can_manage_user_role(SUPER_ADMIN).success
    check = can_manage_user_role(ADMIN)
    assert not check.success
    assert check.message == SUPER_ADMIN_ONLY_MESSAGE
    assert check.user_role == ADMIN


def test_effective_permissions_expand_wildcards():
    perms = effective_permissions(MANAGER)
    assert 'ORDERS:DELETE' in perms
    assert 'SETTINGS:READ' not in perms
    assert set(effective_permissions(SUPER_ADMIN)) == set(ALL_PERMISSION_CODES)
    assert effective_permissions(None) == []


def test_is_admin():
    assert is_admin(ADMIN) and is_admin(SUPER_ADMIN)
    assert not is_admin(MANAGER)
