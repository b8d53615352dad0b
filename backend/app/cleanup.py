"""Best-effort multi-write cleanup: attempt every step, then report failures."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import PartialCleanupError, StorageError

logger = logging.getLogger(__name__)

Step = tuple[str, Callable[[], None]]


@dataclass
class StepOutcome:
    name: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def settle_all(session: Session, steps: Sequence[Step]) -> list[StepOutcome]:
    """Run each step in its own SAVEPOINT and commit whatever succeeded.

    A failing step is rolled back to its savepoint and logged; the remaining
    steps still run. Raises ``StorageError`` when every step failed and
    ``PartialCleanupError`` when only some did.
    """
    outcomes: list[StepOutcome] = []
    for name, step in steps:
        try:
            with session.begin_nested():
                step()
        except SQLAlchemyError as exc:
            logger.error("Cleanup step %s failed: %s", name, exc)
            outcomes.append(StepOutcome(name, exc))
        else:
            outcomes.append(StepOutcome(name))

    session.commit()
    session.expire_all()

    failed = [o.name for o in outcomes if not o.ok]
    if failed and len(failed) == len(outcomes):
        raise StorageError("Cleanup failed; no changes were applied")
    if failed:
        raise PartialCleanupError(failed=failed, succeeded=[o.name for o in outcomes if o.ok])
    return outcomes
