"""
Compensating actions for multi-system writes.

The object store and the metadata database share no transaction, so each
step that commits something registers how to undo it. If a later step
fails, the registered undo actions run newest first. Every action is
best-effort: its failure is logged and never replaces the error that
triggered the rollback.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CompensatingAction:
    description: str
    action: Callable[[], None]


@dataclass
class CompensationPlan:
    """Ordered undo log for one operation."""

    operation: str
    actions: list[CompensatingAction] = field(default_factory=list)

    def register(self, description: str, action: Callable[[], None]) -> None:
        self.actions.append(CompensatingAction(description, action))

    def __len__(self) -> int:
        return len(self.actions)

    def run(self) -> list[str]:
        """
        Execute every registered action in reverse order, then forget them.

        Returns:
            Descriptions of the actions that failed
        """
        failed = []
        for compensating in reversed(self.actions):
            try:
                compensating.action()
                logger.info("compensation_applied", operation=self.operation, action=compensating.description)
            except Exception as e:
                failed.append(compensating.description)
                logger.error(
                    "compensation_failed",
                    operation=self.operation,
                    action=compensating.description,
                    error_type=type(e).__name__,
                    error=str(e),
                )
        self.actions.clear()
        return failed
