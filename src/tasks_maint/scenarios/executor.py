"""Sequential execution of composed scenario steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from tasks_maint.errors import TasksMaintError
from tasks_maint.scenarios.base import Composition, ScenarioState
from tasks_maint.scenarios.runtime import StepRuntime

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class StepResult:
    label: str
    description: str
    status: StepStatus
    messages: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ScenarioRunResult:
    """Outcome of one scenario invocation with the states it went through."""

    label: str
    state: ScenarioState
    steps: list[StepResult] = field(default_factory=list)
    transitions: list[ScenarioState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is ScenarioState.COMPLETED


class ScenarioExecutor:
    """Runs steps strictly in composed order; the first failure aborts the rest."""

    def __init__(self, runtime: StepRuntime) -> None:
        self.runtime = runtime

    def run(self, composition: Composition) -> ScenarioRunResult:
        result = ScenarioRunResult(
            label=composition.label,
            state=ScenarioState.DECLARED,
            transitions=[ScenarioState.DECLARED, ScenarioState.CONFINED],
        )
        if not composition.confined:
            logger.info("Scenario %s does not apply here, nothing to do", composition.label)
            return self._finish(result, ScenarioState.COMPLETED)

        result.transitions.extend([ScenarioState.COMPOSED, ScenarioState.EXECUTING])
        reporter = self.runtime.reporter
        for index, step in enumerate(composition.steps):
            procedure = step.build()
            reporter.info(f"{procedure.description}:")
            try:
                procedure.run(self.runtime)
            except TasksMaintError as error:
                logger.error("Step %s failed: %s", step.label, error)
                reporter.warning(f"{procedure.description} [FAIL]: {error}")
                result.steps.append(
                    StepResult(
                        label=step.label,
                        description=procedure.description,
                        status=StepStatus.FAILED,
                        messages=[*procedure.warnings, str(error)],
                    ),
                )
                for skipped in composition.steps[index + 1 :]:
                    result.steps.append(
                        StepResult(
                            label=skipped.label,
                            description=skipped.procedure.description,
                            status=StepStatus.SKIPPED,
                        ),
                    )
                return self._finish(result, ScenarioState.ABORTED)

            for message in procedure.warnings:
                reporter.warning(message)
            result.steps.append(
                StepResult(
                    label=step.label,
                    description=procedure.description,
                    status=StepStatus.WARNING if procedure.warnings else StepStatus.SUCCESS,
                    messages=list(procedure.warnings),
                ),
            )
        return self._finish(result, ScenarioState.COMPLETED)

    @staticmethod
    def _finish(result: ScenarioRunResult, state: ScenarioState) -> ScenarioRunResult:
        result.state = state
        result.transitions.append(state)
        return result
