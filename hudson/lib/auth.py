"""
Authentication utilities.
Uses Supabase Auth - the core only records who acted, it never
authenticates on its own.

Display name comes from user_metadata (`name` / `full_name`); the role
comes from app_metadata only, which users cannot edit. Unknown or missing
roles are treated as homeowner.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..db import get_supabase_client
from ..models import Actor, Role


security = HTTPBearer()


def actor_from_user(user) -> Actor:
    """Build the acting identity from a Supabase auth user."""
    app_metadata = getattr(user, "app_metadata", None) or {}
    user_metadata = getattr(user, "user_metadata", None) or {}

    # Users can edit their own user_metadata, so the role is only trusted from app_metadata
    try:
        role = Role(app_metadata.get("role", Role.HOMEOWNER.value))
    except ValueError:
        role = Role.HOMEOWNER

    name = user_metadata.get("name") or user_metadata.get("full_name") or user.email or user.id
    return Actor(user_id=user.id, user_name=name, user_role=role)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Actor:
    """
    Validate JWT and return the acting user.
    Uses Supabase Auth - no custom JWT handling.
    """
    client = get_supabase_client()

    try:
        # Verify the token with Supabase
        response = client.auth.get_user(credentials.credentials)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    if not response or not response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    return actor_from_user(response.user)


async def require_tech(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Inspections are run by technicians (admins may act for them)."""
    if actor.user_role == Role.HOMEOWNER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Technician access required"
        )
    return actor
