"""
Unit Tests for declarative access policies
"""
import pytest

from biocms.core.exceptions import ForbiddenError, SelfActionForbiddenError
from biocms.models.user import UserRole
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy, require_role
from biocms.modules.auth.policies import ROUTE_POLICIES, access_gate

ADMIN = Principal(id="admin-1", role="admin")
USER = Principal(id="user-1", role="user")


class TestAccessGate:

    @pytest.mark.parametrize("policy", ["content.manage", "users.manage", "settings.manage", "dashboard.read"])
    def test_admin_only_policies(self, policy):
        assert access_gate.allows(ADMIN, policy)
        assert not access_gate.allows(USER, policy)

    def test_interactions_allowed_for_everyone(self):
        assert access_gate.allows(USER, "biographies.interact")
        assert access_gate.allows(ADMIN, "biographies.interact")

    def test_check_raises_forbidden(self):
        with pytest.raises(ForbiddenError):
            access_gate.check(USER, "content.manage")

    def test_unknown_policy(self):
        with pytest.raises(KeyError):
            access_gate.allows(ADMIN, "nope")
        with pytest.raises(KeyError):
            require_policy("nope")

    def test_check_roles_accepts_enum_members(self):
        access_gate.check_roles(ADMIN, [UserRole.ADMIN])

        with pytest.raises(ForbiddenError):
            access_gate.check_roles(USER, [UserRole.ADMIN])

    def test_every_policy_names_known_roles(self):
        known = {role.value for role in UserRole}
        for policy in ROUTE_POLICIES.values():
            assert policy.roles <= known


class TestSelfAction:

    def test_acting_on_self_is_forbidden(self):
        with pytest.raises(SelfActionForbiddenError) as exc_info:
            access_gate.ensure_not_self(ADMIN, "admin-1", "delete")

        assert exc_info.value.code == "SELF_ACTION_FORBIDDEN"

    def test_acting_on_others_is_allowed(self):
        access_gate.ensure_not_self(ADMIN, "user-1", "delete")


class TestRequireRole:

    async def test_dependency_checks_roles(self):
        dependency = require_role(UserRole.ADMIN)

        assert await dependency(principal=ADMIN) == ADMIN
        with pytest.raises(ForbiddenError):
            await dependency(principal=USER)
