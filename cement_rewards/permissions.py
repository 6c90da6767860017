from .exceptions import PermissionDeniedError

ROLE_DEALER = 'dealer'
ROLE_CONTRACTOR = 'contractor'
ROLE_SUB_DEALER = 'sub_dealer'
ROLE_ADMIN = 'admin'

USER_ROLES = (ROLE_DEALER, ROLE_CONTRACTOR, ROLE_SUB_DEALER, ROLE_ADMIN)

# Roles that buy cement and hold a point balance
BUYER_ROLES = (ROLE_CONTRACTOR, ROLE_SUB_DEALER, ROLE_DEALER)

# Roles allowed to sign up without an admin
SELF_REGISTER_ROLES = (ROLE_CONTRACTOR, ROLE_SUB_DEALER, ROLE_DEALER)

# Accounts a dealer may open for buyers in their district
CUSTOMER_ROLES = (ROLE_CONTRACTOR, ROLE_SUB_DEALER)

CAPABILITIES = {
    'submit_earn_request': frozenset(BUYER_ROLES),
    'redeem_reward': frozenset(BUYER_ROLES),
    'dealer_review': frozenset([ROLE_DEALER]),
    'manage_customers': frozenset([ROLE_DEALER]),
    'admin_review': frozenset([ROLE_ADMIN]),
    'manage_rewards': frozenset([ROLE_ADMIN]),
    'manage_users': frozenset([ROLE_ADMIN]),
}


def can(user, capability):
    """Return True when ``user`` holds ``capability``."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    allowed = CAPABILITIES.get(capability)
    if allowed is None:
        raise KeyError(f"Unknown capability: {capability}")
    return user.role in allowed


def ensure_can(user, capability):
    if not can(user, capability):
        raise PermissionDeniedError(f"Not allowed to {capability.replace('_', ' ')}")
