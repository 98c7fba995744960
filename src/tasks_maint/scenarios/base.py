"""Declarative scenario metadata, step invocations and composition."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from tasks_maint.capabilities import CapabilitySnapshot
from tasks_maint.config import Settings
from tasks_maint.errors import UnknownParameterError

if TYPE_CHECKING:
    from tasks_maint.scenarios.runtime import StepRuntime


class ScenarioState(str, Enum):
    """Lifecycle of one scenario invocation."""

    DECLARED = "declared"
    CONFINED = "confined"
    COMPOSED = "composed"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class ScenarioParam:
    name: str
    description: str
    flag: bool = True


@dataclass(frozen=True, slots=True)
class ScenarioMetadata:
    """Static description of a scenario."""

    label: str
    description: str
    params: tuple[ScenarioParam, ...] = ()
    manual_detection: bool = False
    tags: frozenset[str] = frozenset()

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(param.name for param in self.params)


class Procedure:
    """One executable step. Subclasses take their options as keyword arguments."""

    label: ClassVar[str] = ""
    description: ClassVar[str] = ""
    tags: ClassVar[frozenset[str]] = frozenset()

    def __init__(self) -> None:
        self.warnings: list[str] = []

    @classmethod
    def check_arguments(cls, arguments: Mapping[str, Any]) -> None:
        """Reject invalid static arguments while the step list is composed."""

    def run(self, runtime: StepRuntime) -> None:
        raise NotImplementedError

    def warn(self, message: str) -> None:
        self.warnings.append(message)


@dataclass(frozen=True, slots=True)
class ContextMapping:
    """Route scenario parameter ``param`` to ``step_param`` of ``procedure``."""

    param: str
    procedure: type[Procedure]
    step_param: str


@dataclass(frozen=True, slots=True)
class StepInvocation:
    """Procedure class plus the resolved keyword arguments it is built with."""

    procedure: type[Procedure]
    arguments: tuple[tuple[str, Any], ...] = ()

    @property
    def label(self) -> str:
        return self.procedure.label

    @property
    def kwargs(self) -> dict[str, Any]:
        return dict(self.arguments)

    def build(self) -> Procedure:
        return self.procedure(**self.kwargs)

    def describe(self) -> str:
        if not self.arguments:
            return self.label
        rendered = ", ".join(f"{name}={value!r}" for name, value in self.arguments)
        return f"{self.label} ({rendered})"


@dataclass(frozen=True, slots=True)
class ScenarioContext:
    """Immutable parameter values of one scenario invocation."""

    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    @classmethod
    def for_scenario(
        cls,
        metadata: ScenarioMetadata,
        params: Mapping[str, Any],
    ) -> ScenarioContext:
        """Validate parameter names against the scenario declaration.

        ``None`` values mean "not given" and are dropped.
        """

        given = {name: value for name, value in params.items() if value is not None}
        unknown = tuple(sorted(set(given) - set(metadata.param_names)))
        if unknown:
            raise UnknownParameterError(metadata.label, unknown)
        return cls(values=given)


class Scenario:
    """Ordered composition of procedures gated by capabilities."""

    metadata: ClassVar[ScenarioMetadata]
    context_mappings: ClassVar[tuple[ContextMapping, ...]] = ()

    def __init__(
        self,
        *,
        capabilities: CapabilitySnapshot,
        context: ScenarioContext,
        settings: Settings,
    ) -> None:
        self.capabilities = capabilities
        self.context = context
        self.settings = settings
        self._steps: list[StepInvocation] = []

    @classmethod
    def confine(cls, capabilities: CapabilitySnapshot) -> bool:
        """Whether the scenario applies to this environment at all."""

        return True

    def compose(self) -> None:
        raise NotImplementedError

    @property
    def steps(self) -> tuple[StepInvocation, ...]:
        return tuple(self._steps)

    def add_step(self, procedure: type[Procedure], **arguments: Any) -> None:
        procedure.check_arguments(arguments)
        self._steps.append(
            StepInvocation(procedure=procedure, arguments=tuple(sorted(arguments.items()))),
        )

    def add_steps(self, procedures: Iterable[type[Procedure]]) -> None:
        for procedure in procedures:
            self.add_step(procedure)

    def add_step_with_context(self, procedure: type[Procedure], **arguments: Any) -> None:
        """Add a step whose mapped parameters are filled from the context."""

        mapped = {
            mapping.step_param: self.context.get(mapping.param)
            for mapping in self.context_mappings
            if mapping.procedure is procedure and mapping.param in self.context
        }
        self.add_step(procedure, **{**arguments, **mapped})


@dataclass(frozen=True, slots=True)
class Composition:
    """Result of confining and composing one scenario."""

    label: str
    description: str
    confined: bool
    steps: tuple[StepInvocation, ...] = ()

    @property
    def state(self) -> ScenarioState:
        return ScenarioState.COMPOSED if self.confined else ScenarioState.COMPLETED


def compose_scenario(
    scenario_cls: type[Scenario],
    *,
    capabilities: CapabilitySnapshot,
    context: ScenarioContext,
    settings: Settings | None = None,
) -> Composition:
    """Confine then compose; a scenario confined out composes to no steps.

    The result depends only on the capability snapshot, the context, the
    settings and the scenario definition.
    """

    metadata = scenario_cls.metadata
    if not scenario_cls.confine(capabilities):
        return Composition(label=metadata.label, description=metadata.description, confined=False)
    scenario = scenario_cls(
        capabilities=capabilities,
        context=context,
        settings=settings or Settings(),
    )
    scenario.compose()
    return Composition(
        label=metadata.label,
        description=metadata.description,
        confined=True,
        steps=scenario.steps,
    )

