"""
User provisioning on first login.

- provision_user(identity, store, billing)

Order: determine absence -> create billing customer -> insert row. A failed
customer creation leaves no row behind. A unique violation on insert means a
concurrent login for the same email won; the winner's row is returned.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from saaskit.core.errors import DuplicateUser, IdentityUnavailable, UserInsertFailed
from saaskit.core.logging import log_event
from saaskit.features.billing.provider import BillingProvider
from saaskit.features.users.store import UserStore
from saaskit.models.user import NO_PLAN, Identity, User


@dataclass
class ProvisionResult:
    user: User
    created: bool


def new_user_id() -> str:
    return str(uuid.uuid4())


def provision_user(identity: Identity, store: UserStore, billing: BillingProvider) -> ProvisionResult:
    """
    Ensure a local user row exists for the identity.

    Raises:
        IdentityUnavailable: Identity has no email to key the row on
        CustomerCreationFailed: Billing customer could not be created (no row written)
        UserLookupFailed: Existing row could not be checked
        UserInsertFailed: Row could not be written
    """
    if not identity.email:
        raise IdentityUnavailable("Identity has no email address")

    existing = store.find_by_email(identity.email)
    if existing:
        return ProvisionResult(user=existing, created=False)

    stripe_id = billing.create_customer(identity.id, identity.email, identity.display_name)

    candidate = User(
        id=new_user_id(),
        name=identity.display_name,
        email=identity.email,
        stripe_id=stripe_id,
        plan=NO_PLAN,
    )
    try:
        user = store.insert(candidate)
    except DuplicateUser:
        winner: Optional[User] = store.find_by_email(identity.email)
        if winner is None:
            raise UserInsertFailed("Unique violation on insert but no existing row found")
        log_event(
            "info",
            "users.provision.lost_race",
            user_id=winner.id,
            identity_id=identity.id,
        )
        return ProvisionResult(user=winner, created=False)

    log_event(
        "info",
        "users.provision.created",
        user_id=user.id,
        identity_id=identity.id,
        stripe_id=stripe_id,
    )
    return ProvisionResult(user=user, created=True)
