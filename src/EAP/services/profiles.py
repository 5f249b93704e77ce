"""
User profile lifecycle.

A profile row is created the first time a user signs in, seeded with the
display name given at sign-up. Users may edit only their own profile.
"""

from typing import Optional

from EAP.core.logging_config import get_logger
from EAP.services.auth.cognito_client import AuthSession
from EAP.services.database.repositories import ProfileRecord, ProfileRepository

logger = get_logger(__name__)


class ProfileService:

    def __init__(self, repository: ProfileRepository):
        self.repository = repository

    def ensure_profile(self, session: AuthSession) -> ProfileRecord:
        """Return the caller's profile, creating it on first sign-in."""
        profile = self.repository.get_by_user(session.user_id, session.user_id)
        if profile is not None:
            return profile

        logger.info("No profile for %s yet, creating one", session.user_id)
        return self.repository.insert(session.user_id, session.user_id, session.display_name)

    def get_profile(self, session: AuthSession, user_id: Optional[str] = None) -> Optional[ProfileRecord]:
        return self.repository.get_by_user(session.user_id, user_id or session.user_id)

    def update_profile(
        self,
        session: AuthSession,
        display_name: Optional[str],
        avatar_url: Optional[str]
    ) -> Optional[ProfileRecord]:
        display_name = (display_name or "").strip() or None
        avatar_url = (avatar_url or "").strip() or None

        self.repository.update(session.user_id, display_name=display_name, avatar_url=avatar_url)
        return self.repository.get_by_user(session.user_id, session.user_id)
