from biocms.modules.auth.authenticator import Principal, TokenAuthenticator
from biocms.modules.auth.dependencies import (
    get_current_user,
    get_optional_principal,
    require_auth,
    require_policy,
    require_role,
)
from biocms.modules.auth.policies import ROUTE_POLICIES, AccessGate, AccessPolicy, access_gate

__all__ = [
    "Principal",
    "TokenAuthenticator",
    "AccessGate",
    "AccessPolicy",
    "ROUTE_POLICIES",
    "access_gate",
    "require_auth",
    "require_role",
    "require_policy",
    "get_optional_principal",
    "get_current_user",
]
