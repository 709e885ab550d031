# This file is part of netapply. See LICENSE file for license information.
"""Structured outcome of resolving and applying a network config."""

from enum import Enum
from typing import List, NamedTuple, Optional

from netapply import settings


class Status(Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"

    def __str__(self):  # pylint: disable=invalid-str-returned
        return self.value


class Reason(Enum):
    """Why a step or an interface did not go as declared.

    All of these are recoverable: the run carries on with the next step
    or interface.
    """

    NO_MATCHING_ADAPTER = "no-matching-adapter"
    RENAME_CONFLICT = "rename-conflict"
    RENAME_FAILED = "rename-failed"
    COMMAND_FAILURE = "command-failure"
    INVALID_VALUE = "invalid-value"

    def __str__(self):  # pylint: disable=invalid-str-returned
        return self.value


class StepResult(NamedTuple):
    step: str
    status: Status
    reason: Optional[Reason] = None
    detail: str = ""
    command: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
            "command": self.command,
        }


class ApplyResult:
    """Every step taken for one resolved interface."""

    def __init__(self, key: str, mac: str, name: str):
        self.key = key
        self.mac = mac
        self.name = name
        self.steps: List[StepResult] = []

    def add(
        self,
        step: str,
        status: Status,
        reason: Optional[Reason] = None,
        detail: str = "",
        command: Optional[str] = None,
    ) -> StepResult:
        result = StepResult(step, status, reason, detail, command)
        self.steps.append(result)
        return result

    @property
    def failures(self) -> List[StepResult]:
        return [s for s in self.steps if s.status == Status.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "mac": self.mac,
            "name": self.name,
            "ok": self.ok,
            "steps": [s.to_dict() for s in self.steps],
        }


class Unmatched(NamedTuple):
    key: str
    mac: str
    reason: Reason = Reason.NO_MATCHING_ADAPTER


class RunReport:
    def __init__(self):
        self.unmatched: List[Unmatched] = []
        self.results: List[ApplyResult] = []
        self.warnings: List[str] = []

    def add_unmatched(self, key: str, mac: str):
        self.unmatched.append(Unmatched(key, mac))

    def add_result(self, result: ApplyResult):
        self.results.append(result)

    @property
    def failed(self) -> List[ApplyResult]:
        return [r for r in self.results if not r.ok]

    @property
    def exit_code(self) -> int:
        # Adapter and command level problems never fail the run.
        return settings.EXIT_OK

    def to_dict(self) -> dict:
        return {
            "summary": {
                "applied": len(self.results),
                "failed": len(self.failed),
                "unmatched": len(self.unmatched),
                "exit_code": self.exit_code,
            },
            "unmatched": [
                {"key": u.key, "mac": u.mac, "reason": u.reason.value}
                for u in self.unmatched
            ],
            "results": [r.to_dict() for r in self.results],
            "warnings": list(self.warnings),
        }

    def format_text(self) -> str:
        lines = []
        for unmatched in self.unmatched:
            lines.append(
                "%s: no adapter with mac %s" % (unmatched.key, unmatched.mac)
            )
        for result in self.results:
            lines.append(
                "%s (%s) -> %s: %s"
                % (
                    result.key,
                    result.mac,
                    result.name,
                    "ok" if result.ok else "%d failed" % len(result.failures),
                )
            )
            for step in result.steps:
                if step.status == Status.OK:
                    continue
                line = "    %s %s" % (step.step, step.status)
                if step.reason:
                    line += " [%s]" % step.reason
                if step.detail:
                    line += ": %s" % step.detail
                lines.append(line)
        lines.append(
            "%d interface(s) configured, %d with failures, %d unmatched"
            % (len(self.results), len(self.failed), len(self.unmatched))
        )
        return "\n".join(lines)
