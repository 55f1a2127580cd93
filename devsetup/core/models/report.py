"""
Step reports for best-effort procedures (rollback, update).

Each step ends in exactly one outcome. A failed step never stops the
procedure; it is recorded here instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field

OK = "ok"
DECLINED = "declined"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class StepResult:
    name: str
    outcome: str
    detail: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "outcome": self.outcome, "detail": self.detail}


@dataclass
class StepReport:
    """Outcome of every step, in execution order."""

    steps: list[StepResult] = field(default_factory=list)

    def add(self, name: str, outcome: str, detail: str = "") -> None:
        self.steps.append(StepResult(name, outcome, detail))

    def outcome_of(self, name: str) -> str | None:
        for step in self.steps:
            if step.name == name:
                return step.outcome
        return None

    @property
    def failed(self) -> list[StepResult]:
        return [s for s in self.steps if s.outcome == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "failed": len(self.failed),
        }
