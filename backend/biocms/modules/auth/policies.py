"""
Declarative access policies.

Each route class names the roles allowed to use it. Endpoints depend on
``require_policy("<name>")`` instead of repeating role lists inline, and the
gate itself can be exercised without HTTP.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from biocms.core.exceptions import ForbiddenError, SelfActionForbiddenError
from biocms.models.user import UserRole

ALL_ROLES = frozenset(role.value for role in UserRole)
ADMIN_ONLY = frozenset({UserRole.ADMIN.value})


@dataclass(frozen=True)
class AccessPolicy:
    name: str
    roles: FrozenSet[str]
    description: str = ""


ROUTE_POLICIES: Dict[str, AccessPolicy] = {
    policy.name: policy
    for policy in (
        AccessPolicy("authenticated", ALL_ROLES, "Any logged-in user"),
        AccessPolicy("biographies.interact", ALL_ROLES, "Like, bookmark and comment"),
        AccessPolicy("content.manage", ADMIN_ONLY, "Biographies, categories, pricing and FAQs"),
        AccessPolicy("users.manage", ADMIN_ONLY, "User administration"),
        AccessPolicy("settings.manage", ADMIN_ONLY, "Site settings"),
        AccessPolicy("contacts.manage", ADMIN_ONLY, "Contact inbox"),
        AccessPolicy("newsletter.manage", ADMIN_ONLY, "Subscriber list"),
        AccessPolicy("activity.read", ADMIN_ONLY, "Audit trail"),
        AccessPolicy("dashboard.read", ADMIN_ONLY, "Admin dashboard"),
    )
}


class AccessGate:
    """Role checks against ``ROUTE_POLICIES``"""

    def __init__(self, policies: Optional[Dict[str, AccessPolicy]] = None):
        self.policies = policies if policies is not None else ROUTE_POLICIES

    def allows(self, principal, policy_name: str) -> bool:
        policy = self.policies.get(policy_name)
        if policy is None:
            raise KeyError(f"Unknown access policy '{policy_name}'")
        return principal.role in policy.roles

    def check(self, principal, policy_name: str) -> None:
        if not self.allows(principal, policy_name):
            raise ForbiddenError()

    @staticmethod
    def check_roles(principal, roles) -> None:
        allowed = {role.value if hasattr(role, "value") else role for role in roles}
        if principal.role not in allowed:
            raise ForbiddenError()

    @staticmethod
    def ensure_not_self(actor, target_id, action: str) -> None:
        """Admins cannot change role, deactivate or delete themselves via admin routes"""
        if str(actor.id) == str(target_id):
            raise SelfActionForbiddenError(action)


access_gate = AccessGate()
