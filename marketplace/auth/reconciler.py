"""
Identity reconciliation - map a federated profile onto one local user.

Users are keyed by email across providers. The first Google sign-in for an
email creates a `google` account; every later sign-in, and any sign-in for
an email that already has a local account, returns the existing record
unchanged. The stored name and avatar are not refreshed from Google.
"""

from __future__ import annotations

import logging

from marketplace.core.errors import AuthenticationError, ConflictError
from marketplace.core.models import AuthProvider, User, UserRole
from marketplace.integrations.oauth import FederatedProfile
from marketplace.services.users import UserService

logger = logging.getLogger(__name__)


class NoEmailError(AuthenticationError):
    """The provider did not share an email address."""
    default_detail = "Email not found in Google profile"


class IdentityReconciler:
    """Find-or-create for federated sign-ins."""

    def __init__(self, users: UserService):
        self.users = users

    async def reconcile(self, profile: FederatedProfile) -> User:
        """
        Return the local user for a verified federated profile.

        Two first sign-ins for the same email can race; the store's unique
        email index lets exactly one insert through and the loser re-reads
        the winner's record.

        Raises:
            NoEmailError: the profile has no email
            ConflictError: the external id is already bound to another email
        """
        if not profile.email:
            logger.warning(f"{profile.provider.value} profile {profile.external_id} has no email")
            raise NoEmailError()

        existing = await self.users.find_by_email(profile.email)
        if existing:
            return existing

        user = User(
            name=profile.name or profile.email.split("@")[0],
            email=profile.email,
            password_hash=None,
            provider=AuthProvider.GOOGLE,
            external_id=profile.external_id,
            role=UserRole.USER,
            avatar=profile.avatar_url,
        )

        try:
            return await self.users.create(user)
        except ConflictError:
            existing = await self.users.find_by_email(profile.email)
            if existing:
                logger.info(f"Concurrent sign-in for {profile.email} resolved to {existing.id}")
                return existing
            raise
