"""
Engine executor — the provisioning loop.

Runs the installer steps in their fixed order, collects StepRecords,
and stops at the first fatal one.

Flow:
    bootstrap → runtimes → alternatives → composer → laravel → symfony → helpers
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from phpstack.core.engine import steps
from phpstack.core.engine.steps import StepEnvironment
from phpstack.core.errors import ProvisionError
from phpstack.core.models.step import StepOutcome, StepRecord

logger = logging.getLogger(__name__)

StepFn = Callable[[StepEnvironment], list[StepRecord]]


@dataclass(frozen=True)
class Step:
    """One named entry in the provisioning sequence."""

    name: str
    run: StepFn


STEPS: tuple[Step, ...] = (
    Step("system-bootstrap", steps.bootstrap_system),
    Step("php-runtimes", steps.install_runtimes),
    Step("alternatives", steps.configure_alternatives),
    Step("composer", steps.install_composer),
    Step("laravel", steps.install_laravel),
    Step("symfony", steps.install_symfony),
    Step("shell-helpers", steps.install_shell_helpers),
)


@dataclass
class ProvisionReport:
    """Result of one provisioning run."""

    records: list[StepRecord] = field(default_factory=list)
    aborted_at: str | None = None

    def _count(self, outcome: StepOutcome) -> int:
        return sum(1 for r in self.records if r.outcome == outcome)

    @property
    def succeeded(self) -> int:
        return self._count(StepOutcome.SUCCESS)

    @property
    def skipped(self) -> int:
        return self._count(StepOutcome.SKIPPED)

    @property
    def warnings(self) -> int:
        return self._count(StepOutcome.FAILED_NONFATAL)

    @property
    def fatal(self) -> int:
        return self._count(StepOutcome.FAILED_FATAL)

    @property
    def last_fatal(self) -> StepRecord | None:
        for record in reversed(self.records):
            if record.fatal:
                return record
        return None

    @property
    def status(self) -> str:
        if self.fatal:
            return "failed"
        if self.warnings:
            return "partial"
        return "ok"

    @property
    def exit_code(self) -> int:
        return 1 if self.fatal else 0

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "exit_code": self.exit_code,
            "aborted_at": self.aborted_at,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "warnings": self.warnings,
            "fatal": self.fatal,
            "steps": [r.model_dump(mode="json") for r in self.records],
        }


def _log_record(record: StepRecord) -> None:
    if record.outcome == StepOutcome.SUCCESS:
        logger.info("✓ %s — %s", record.name, record.message)
    elif record.outcome == StepOutcome.SKIPPED:
        logger.info("⊘ %s — %s", record.name, record.message)
    elif record.outcome == StepOutcome.FAILED_NONFATAL:
        logger.warning("✗ %s — %s", record.name, record.message)
    else:
        logger.error("✗ %s — %s", record.name, record.message)


def run_steps(env: StepEnvironment, sequence: tuple[Step, ...] = STEPS) -> ProvisionReport:
    """Execute *sequence* in order, stopping at the first fatal record.

    A ``ProvisionError`` escaping a step (``PrivilegeError`` from the
    gateway, for one) is recorded as a fatal failure of that step.
    """
    report = ProvisionReport()

    for step in sequence:
        logger.debug("Step %s starting", step.name)
        try:
            records = step.run(env)
        except ProvisionError as e:
            records = [StepRecord.failure(step.name, str(e))]

        for record in records:
            _log_record(record)
        report.records.extend(records)

        if any(r.fatal for r in records):
            report.aborted_at = step.name
            logger.error("Aborting: step '%s' failed", step.name)
            break

    logger.info(
        "Provisioning %s: %d succeeded, %d skipped, %d warning(s), %d fatal",
        report.status,
        report.succeeded,
        report.skipped,
        report.warnings,
        report.fatal,
    )
    return report
