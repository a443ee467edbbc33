"""JWT token management for actor identity.

Sign-in happens upstream; this service only issues and decodes the bearer
tokens that carry the actor's id, email, role and dealership.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from warranty_hub.app.config import Settings
from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.schemas import Actor


def create_access_token(actor: Actor, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {
        "sub": actor.user_id,
        "email": actor.email,
        "role": actor.role.value,
        "dealer_id": actor.dealer_id,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def actor_from_token(token: str, settings: Settings) -> Actor | None:
    """Return the Actor a token was issued for, or None if it is invalid."""
    payload = decode_token(token, settings)
    if not payload or "sub" not in payload:
        return None
    try:
        role = ActorRole(str(payload.get("role", ActorRole.DEALER.value)).upper())
    except ValueError:
        return None
    return Actor(
        user_id=payload["sub"],
        email=payload.get("email") or "",
        role=role,
        dealer_id=payload.get("dealer_id"),
    )
