from __future__ import annotations

from classroom_membership import constants as c
from classroom_membership.models import UserProfile
from classroom_membership.protocols import StorageGatewayProtocol


def user_path(user_id: str) -> str:
    return f"{c.USERS_COLLECTION}/{user_id}"


class UserDirectory:
    """Read access to externally managed user profiles."""

    def __init__(self, gateway: StorageGatewayProtocol) -> None:
        self.gateway = gateway

    async def get_user(self, user_id: str) -> UserProfile | None:
        snapshot = await self.gateway.get_document(user_path(user_id))
        return UserProfile.from_snapshot(snapshot) if snapshot else None

    async def update_name(self, user_id: str, name: str) -> None:
        await self.gateway.update_fields(user_path(user_id), {c.FIELD_NAME: name})
