"""FastAPI authentication dependencies for route protection."""

from collections.abc import Awaitable, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.gate import Identity, IdentityGate
from app.database import get_db
from app.models.profile import ROLE_ADMIN, ROLE_CONTRACTOR, ROLE_LANDLORD

# Missing credentials are reported by the gate as 401, not by HTTPBearer as 403
_bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Resolve the Bearer token to the caller's identity.

    Raises:
        Unauthenticated: If the token is missing, invalid, or has no profile.
    """
    token = credentials.credentials if credentials is not None else None
    return await IdentityGate(db).authenticate(token)


def require_roles(*roles: str) -> Callable[..., Awaitable[Identity]]:
    """Build a dependency that only admits identities with one of ``roles``."""

    async def _require(identity: Identity = Depends(get_current_identity)) -> Identity:
        return IdentityGate.require_role(identity, roles)

    return _require


require_admin = require_roles(ROLE_ADMIN)
require_landlord = require_roles(ROLE_LANDLORD, ROLE_ADMIN)
require_contractor = require_roles(ROLE_CONTRACTOR, ROLE_ADMIN)
