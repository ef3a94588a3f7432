"""Buyer and operator lookups against the profiles table."""

from typing import Any
from uuid import UUID

from src.core.config import get_settings
from src.core.supabase import get_supabase_client


class UserService:
    """Read-only access to user profiles (name, email, role)."""

    def __init__(self, supabase_client=None) -> None:
        """Initialize user service with Supabase client."""
        self.client = supabase_client or get_supabase_client()
        self.settings = get_settings()

    async def get_user(self, user_id: UUID) -> dict[str, Any] | None:
        """Get a profile by auth user ID.

        Args:
            user_id: The auth user ID.

        Returns:
            dict | None: The profile data or None if not found.
        """
        response = (
            self.client.table("profiles")
            .select("user_id, display_name, email, role")
            .eq("user_id", str(user_id))
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def is_operator(self, user_id: UUID) -> bool:
        """Check whether the user holds an operator (admin) role.

        Args:
            user_id: The auth user ID.

        Returns:
            bool: True for roles listed in OPERATOR_ROLES.
        """
        profile = await self.get_user(user_id)
        if not profile:
            return False

        role = (profile.get("role") or "").strip().lower()
        return role in self.settings.operator_roles_list


def get_user_service() -> UserService:
    """Get user service instance.

    Returns:
        UserService: User service instance.
    """
    return UserService()
