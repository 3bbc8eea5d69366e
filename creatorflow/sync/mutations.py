"""
Tagged outcomes for optimistic mutations.

Every store mutator applies its change locally right away and hands back a
Mutation. The mutation starts as APPLIED_PENDING_CONFIRM and settles once the
remote write finishes:

    APPLIED        remote write confirmed
    ROLLED_BACK    remote write failed, local change undone
    DIVERGED       remote write failed, local change kept
    LOCAL_ONLY     no session identity, nothing was sent
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

R = TypeVar("R")


class MutationStatus(str, Enum):
    APPLIED_PENDING_CONFIRM = "applied_pending_confirm"
    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"
    DIVERGED = "diverged"
    LOCAL_ONLY = "local_only"


class MutationAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class RollbackPolicy(str, Enum):
    """Which failed remote writes undo their local change."""
    CREATE_ONLY = "create_only"
    ALL = "all"


@dataclass
class Mutation(Generic[R]):
    """One local change and the fate of its remote write."""
    entity: str
    action: MutationAction
    entity_id: str
    record: Optional[R] = None
    status: MutationStatus = MutationStatus.APPLIED_PENDING_CONFIRM
    error: Optional[str] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)

    @property
    def settled(self) -> bool:
        return self.status != MutationStatus.APPLIED_PENDING_CONFIRM

    async def wait(self) -> MutationStatus:
        """Wait for the remote write (if any) and return the final status."""
        if self.task is not None:
            await self.task
        return self.status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "action": self.action.value,
            "id": self.entity_id,
            "status": self.status.value,
            "error": self.error,
        }
