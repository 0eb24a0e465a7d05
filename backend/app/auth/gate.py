"""Identity gate — resolves bearer credentials to profiles and checks roles."""

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import decode_token
from app.exceptions import Forbidden, ProfileNotFound, Unauthenticated
from app.models.profile import ROLE_ADMIN, Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller of a request."""

    id: uuid.UUID
    role: str
    full_name: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class IdentityGate:
    """Verifies a bearer token and loads the caller's profile.

    Every call re-verifies the token and re-reads the profile; nothing is
    cached between requests.
    """

    def __init__(self, db: AsyncSession, verify: Callable[[str], dict] = decode_token) -> None:
        self._db = db
        self._verify = verify

    async def authenticate(self, token: str | None) -> Identity:
        """Return the identity for ``token``.

        Raises:
            Unauthenticated: Missing, malformed, expired or rejected token.
            ProfileNotFound: The token is valid but no profile row exists.
        """
        if not token:
            raise Unauthenticated("Missing or invalid authorization header")

        try:
            payload = self._verify(token)
        except JWTError:
            raise Unauthenticated() from None

        sub: str | None = payload.get("sub")
        if sub is None:
            raise Unauthenticated()

        try:
            profile_id = uuid.UUID(sub)
        except ValueError:
            raise Unauthenticated() from None

        result = await self._db.execute(select(Profile).where(Profile.id == profile_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            logger.warning("Valid token for %s but no profile row", profile_id)
            raise ProfileNotFound()

        return Identity(id=profile.id, role=profile.role, full_name=profile.full_name)

    @staticmethod
    def require_role(identity: Identity, roles: Iterable[str]) -> Identity:
        """Return ``identity`` if its role is one of ``roles``, else raise Forbidden."""
        if identity.role not in set(roles):
            raise Forbidden()
        return identity
