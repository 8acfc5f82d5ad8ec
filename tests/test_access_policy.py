"""
Tests for the access policy and actor resolution.
"""

import pytest

from complaintdesk.access.application import resolve_actor
from complaintdesk.access.domain import (
    AdminActor, ExecutiveActor, UserAccount, evaluate_access, parse_permissions, require_access
)
from complaintdesk.access.infrastructure import InMemoryUserDirectory
from complaintdesk.config import AccessReason, Permission, Role, COMPLAINT_PERMISSIONS
from complaintdesk.core import ForbiddenException, ResourceNotFoundException

from conftest import (
    ADMIN_ID, INACTIVE_EXEC_ID, ZONE5_EXEC_ID, BRANCH51_EXEC_ID
)


class TestAdmin:

    @pytest.mark.parametrize("permission", COMPLAINT_PERMISSIONS)
    @pytest.mark.parametrize("zone_id, branch_id", [(5, 51), (6, 61), (None, None)])
    def test_admin_allowed_everywhere(self, admin, permission, zone_id, branch_id):
        decision = evaluate_access(admin, permission, zone_id, branch_id)
        assert decision.allowed
        assert decision.reason == AccessReason.ADMIN

    def test_admin_allowed_unknown_permission(self, admin):
        assert evaluate_access(admin, "complaint.delete", 5, 51)


class TestExecutive:

    def test_zone_scoped_executive_inside_zone(self, zone5_exec):
        decision = evaluate_access(zone5_exec, Permission.COMPLAINT_UPDATE_STATUS, 5, 52)
        assert decision.allowed
        assert decision.reason == AccessReason.GRANTED

    def test_zone_scoped_executive_outside_zone(self, zone5_exec):
        decision = evaluate_access(zone5_exec, Permission.COMPLAINT_VIEW, 6, 61)
        assert not decision.allowed
        assert decision.reason == AccessReason.ZONE_SCOPE_VIOLATION

    def test_missing_permission_checked_before_scope(self, view_only_exec):
        decision = evaluate_access(view_only_exec, Permission.COMPLAINT_UPDATE_STATUS, 6, 61)
        assert decision.reason == AccessReason.PERMISSION_DENIED

    def test_zoneless_executive_covers_every_zone(self, org_wide_exec):
        for zone_id, branch_id in [(5, 51), (6, 61), (99, 990)]:
            assert evaluate_access(org_wide_exec, Permission.COMPLAINT_VIEW, zone_id, branch_id)

    def test_zoneless_executive_still_needs_permission(self):
        actor = ExecutiveActor(user_id=20, permissions=frozenset({Permission.COMPLAINT_VIEW}))
        decision = evaluate_access(actor, Permission.COMPLAINT_CREATE, 5, 51)
        assert decision.reason == AccessReason.PERMISSION_DENIED

    def test_branch_scoped_executive(self, branch51_exec):
        assert evaluate_access(branch51_exec, Permission.COMPLAINT_VIEW, 5, 51)
        decision = evaluate_access(branch51_exec, Permission.COMPLAINT_VIEW, 5, 52)
        assert decision.reason == AccessReason.BRANCH_SCOPE_VIOLATION

    def test_branch_scope_applies_without_zone(self):
        actor = ExecutiveActor(user_id=21, permissions=frozenset(COMPLAINT_PERMISSIONS), branch_id=51)
        decision = evaluate_access(actor, Permission.COMPLAINT_VIEW, 5, 52)
        assert decision.reason == AccessReason.BRANCH_SCOPE_VIOLATION

    def test_require_access_raises_with_reason(self, zone5_exec):
        with pytest.raises(ForbiddenException) as exc_info:
            require_access(zone5_exec, Permission.COMPLAINT_EDIT, 6, 61)
        assert exc_info.value.reason == AccessReason.ZONE_SCOPE_VIOLATION
        assert exc_info.value.permission == Permission.COMPLAINT_EDIT
        assert exc_info.value.code == "forbidden"


class TestParsePermissions:

    def test_json_array(self):
        assert parse_permissions('["complaint.view", "complaint.edit"]') == {
            "complaint.view", "complaint.edit"
        }

    def test_comma_separated(self):
        assert parse_permissions("complaint.view, complaint.create") == {
            "complaint.view", "complaint.create"
        }

    @pytest.mark.parametrize("raw", [None, "", "   ", "[not json"])
    def test_empty_or_unreadable(self, raw):
        assert parse_permissions(raw) == frozenset()


class TestResolveActor:

    @pytest.mark.asyncio
    async def test_admin_account(self, users):
        actor = await resolve_actor(users, ADMIN_ID)
        assert isinstance(actor, AdminActor)
        assert actor.role == Role.ADMIN

    @pytest.mark.asyncio
    async def test_executive_account_keeps_scope(self, users):
        actor = await resolve_actor(users, BRANCH51_EXEC_ID)
        assert isinstance(actor, ExecutiveActor)
        assert (actor.zone_id, actor.branch_id) == (5, 51)
        assert actor.has_permission(Permission.COMPLAINT_ASSIGN)

    @pytest.mark.asyncio
    async def test_unknown_user(self, users):
        with pytest.raises(ResourceNotFoundException):
            await resolve_actor(users, 9999)

    @pytest.mark.asyncio
    async def test_inactive_user(self, users):
        with pytest.raises(ForbiddenException) as exc_info:
            await resolve_actor(users, INACTIVE_EXEC_ID)
        assert exc_info.value.reason == AccessReason.INACTIVE_USER

    def test_account_to_actor(self):
        account = UserAccount(
            id=ZONE5_EXEC_ID, name="x", role=Role.EXECUTIVE, zone_id=5,
            permissions=frozenset({Permission.COMPLAINT_VIEW})
        )
        assert account.to_actor() == ExecutiveActor(
            user_id=ZONE5_EXEC_ID, permissions=frozenset({Permission.COMPLAINT_VIEW}), zone_id=5
        )

    def test_unknown_role_gets_no_actor(self):
        account = UserAccount(id=77, name="x", role="supervisor", permissions=frozenset(COMPLAINT_PERMISSIONS))
        with pytest.raises(ForbiddenException) as exc_info:
            account.to_actor()
        assert exc_info.value.reason == AccessReason.UNKNOWN_ROLE

    @pytest.mark.asyncio
    async def test_resolve_rejects_unknown_role(self):
        directory = InMemoryUserDirectory([UserAccount(id=77, name="x", role="", zone_id=5)])
        with pytest.raises(ForbiddenException) as exc_info:
            await resolve_actor(directory, 77)
        assert exc_info.value.reason == AccessReason.UNKNOWN_ROLE
