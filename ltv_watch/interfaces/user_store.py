"""User store protocol: persistence of user records keyed by chat identity."""
from typing import Protocol

from ..models import UserRecord


class UserStore(Protocol):
    """Abstract key-value interface over user records."""

    async def get(self, chat_id: str) -> UserRecord | None: ...

    async def set(self, record: UserRecord) -> None: ...

    async def delete(self, chat_id: str) -> None: ...

    async def list_ids(self) -> list[str]: ...
