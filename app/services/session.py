from dataclasses import dataclass, field
from typing import List, Optional

from jose import JWTError, jwt

@dataclass
class SessionPayload:
    user_id: Optional[int]
    profile_id: Optional[int]
    school_id: Optional[int]
    roles: List[str] = field(default_factory=list)

def _int_claim(value) -> Optional[int]:
    # bool is an int subclass but never a valid id
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None

def get_session(token: Optional[str]) -> Optional[SessionPayload]:
    """
    Read the session claims from the backend-issued token.

    The signature is not checked here; the backend verifies the token on
    every authenticated request.
    """
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None

    # profileId is the primary identity, userId is an older alias
    profile_id = _int_claim(claims.get("profileId"))
    if profile_id is None:
        profile_id = _int_claim(claims.get("userId"))
    roles = claims.get("roles")
    return SessionPayload(
        user_id=profile_id,
        profile_id=profile_id,
        school_id=_int_claim(claims.get("schoolId")),
        roles=list(roles) if isinstance(roles, list) else [],
    )

def is_authenticated(session: Optional[SessionPayload]) -> bool:
    return bool(session and session.profile_id)
