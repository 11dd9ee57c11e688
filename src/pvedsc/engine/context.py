"""Per-run state threaded through the reconciliation engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Set

from pvedsc.models.resource import AuditFinding, ReconciliationAction


class RunState(Enum):
    """Run Coordinator states."""
    STARTING = "starting"
    LOCKED = "locked"
    PARSING = "parsing"
    DISPATCHING = "dispatching"
    AUDITING = "auditing"
    DONE = "done"
    LOCK_FAILED = "lock_failed"
    MANIFEST_INVALID = "manifest_invalid"


EXIT_OK = 0
EXIT_LOCK_FAILED = 1
EXIT_MANIFEST_INVALID = 2


@dataclass
class RunContext:
    """Everything one reconciliation run accumulates."""
    dry_run: bool = False
    state: RunState = RunState.STARTING
    declared_ids: Set[int] = field(default_factory=set)
    unprovisioned_ids: Set[int] = field(default_factory=set)
    power_failed_ids: Set[int] = field(default_factory=set)
    actions: List[ReconciliationAction] = field(default_factory=list)
    findings: List[AuditFinding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def completed(self) -> bool:
        return self.state == RunState.DONE

    @property
    def exit_code(self) -> int:
        if self.state == RunState.DONE:
            return EXIT_OK
        if self.state == RunState.MANIFEST_INVALID:
            return EXIT_MANIFEST_INVALID
        return EXIT_LOCK_FAILED
