"""
Role capability tables.
"""
from src.modules.property.permissions import (
    can_manage_community_role,
    get_assignable_community_roles,
    get_community_permissions,
    get_household_permissions,
    get_household_role_level,
    has_community_permission,
    has_household_permission,
)


def test_admin_has_every_community_capability():
    assert all(get_community_permissions("ADMIN").values())


def test_manager_cannot_manage_community_or_delete():
    perms = get_community_permissions("MANAGER")
    assert perms["can_create_buildings"]
    assert perms["can_manage_members"]
    assert not perms["can_manage_community"]
    assert not perms["can_delete_buildings"]
    assert not perms["can_delete_working_groups"]


def test_member_can_raise_tickets_viewer_only_reads():
    view = {"can_view_buildings", "can_view_members", "can_view_working_groups"}
    granted = {name for name, ok in get_community_permissions("MEMBER").items() if ok}
    assert granted == view | {"can_create_tickets"}
    granted = {name for name, ok in get_community_permissions("VIEWER").items() if ok}
    assert granted == view
    assert has_community_permission("MANAGER", "can_create_tickets")


def test_unknown_role_has_nothing():
    assert not any(get_community_permissions(None).values())
    assert not has_community_permission("OWNER", "can_view_buildings")


def test_role_management_hierarchy():
    assert can_manage_community_role("ADMIN", "ADMIN")
    assert can_manage_community_role("MANAGER", "MEMBER")
    assert not can_manage_community_role("MANAGER", "MANAGER")
    assert not can_manage_community_role("MEMBER", "VIEWER")


def test_assignable_roles():
    assert get_assignable_community_roles("ADMIN") == ["ADMIN", "MANAGER", "MEMBER", "VIEWER"]
    assert get_assignable_community_roles("MANAGER") == ["MEMBER", "VIEWER"]
    assert get_assignable_community_roles("VIEWER") == []


def test_household_roles():
    assert all(get_household_permissions("OWNER").values())
    assert has_household_permission("USER", "can_move_items")
    assert not has_household_permission("USER", "can_manage_members")
    assert not any(get_household_permissions("VISITOR").values())


def test_household_role_levels():
    assert get_household_role_level("OWNER") > get_household_role_level("USER") > get_household_role_level("VISITOR")
    assert get_household_role_level(None) == 0
