"""
context.py
----------
Purpose:
    Explicit authentication context passed to every data-layer call.

Notes:
    - Claims are decoded without signature verification; the API verifies the
      token, the client only needs the role and identity to pick affordances.
    - A context without a token is valid: reads made with it stay idle.
"""

from dataclasses import dataclass, replace

import jwt

from crm_console.config import settings
from crm_console.errors import LocalValidationError
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.domain.enums import ROLE_PRECEDENCE, Role
from crm_console.models.domain.user import UserProfile

logger = get_logger(__name__)

_ID_CLAIMS = ("oid", "sub")
_EMAIL_CLAIMS = ("preferred_username", "email", "upn")


def decode_claims(token: str) -> dict:
    """Decode JWT claims without verifying them."""
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False, "verify_aud": False},
        )
    except jwt.PyJWTError as e:
        raise LocalValidationError(f"Invalid access token: {e}", code="INVALID_TOKEN") from e


def resolve_role(claims: dict) -> str:
    """Pick the most privileged recognised role from the token claims."""
    roles = claims.get("roles")
    if isinstance(roles, list):
        granted = {r for r in roles if isinstance(r, str)}
        for role in ROLE_PRECEDENCE:
            if role.value in granted:
                return role.value
    scalar = claims.get("role")
    if isinstance(scalar, str) and scalar in Role._value2member_map_:
        return scalar
    return Role.USER.value


def _first_claim(claims: dict, names: tuple[str, ...]) -> str | None:
    for name in names:
        value = claims.get(name)
        if isinstance(value, str) and value:
            return value
    return None


@dataclass(frozen=True)
class AuthContext:
    """Access token plus the identity and role derived from it."""

    access_token: str | None = None
    role: str | None = None
    user_id: str | None = None
    email: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls()

    @classmethod
    def from_token(cls, token: str | None) -> "AuthContext":
        """
        Build a context from a bearer token.

        Raises:
            LocalValidationError: If the claims cannot be decoded and AUTH_BYPASS is off
        """
        if not token:
            return cls.anonymous()
        try:
            claims = decode_claims(token)
        except LocalValidationError:
            if not settings.AUTH_BYPASS:
                raise
            logger.warning("Token claims unreadable, continuing with bypass role")
            return cls(access_token=token, role=Role.USER.value)

        return cls(
            access_token=token,
            role=resolve_role(claims),
            user_id=_first_claim(claims, _ID_CLAIMS),
            email=_first_claim(claims, _EMAIL_CLAIMS),
        )

    def with_profile(self, profile: UserProfile) -> "AuthContext":
        """Context whose identity and role come from the /me profile."""
        return replace(self, role=profile.role, user_id=profile.id, email=profile.email)

    def __repr__(self) -> str:
        token = "***" if self.access_token else None
        return f"AuthContext(access_token={token!r}, role={self.role!r}, user_id={self.user_id!r})"
