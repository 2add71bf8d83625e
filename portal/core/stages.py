"""Project lifecycle stage tables per project kind."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ProjectKind(str, enum.Enum):
    CLIENT = "client"
    LABS = "labs"


@dataclass(frozen=True)
class StageDescriptor:
    value: str
    label: str
    color: str


CLIENT_PROJECT_STAGES: tuple[StageDescriptor, ...] = (
    StageDescriptor("kick_off", "Kick Off", "bg-blue-500"),
    StageDescriptor("pay_first", "Pay First", "bg-yellow-500"),
    StageDescriptor("deliver", "Deliver", "bg-purple-500"),
    StageDescriptor("revise", "Revise", "bg-orange-500"),
    StageDescriptor("pay_final", "Pay Final", "bg-cyan-500"),
    StageDescriptor("completed", "Completed", "bg-green-500"),
)

LABS_PROJECT_STAGES: tuple[StageDescriptor, ...] = (
    StageDescriptor("concept", "Concept", "bg-purple-500"),
    StageDescriptor("mvp", "Building MVP", "bg-orange-500"),
    StageDescriptor("development", "Development", "bg-yellow-500"),
    StageDescriptor("launched", "Launched", "bg-green-500"),
)

FIRST_PAYMENT_STAGE = "pay_first"
FINAL_PAYMENT_STAGE = "pay_final"
COMPLETED_STAGE = "completed"

# Milestone stage -> label used in auto-invoice descriptions.
BILLABLE_MILESTONES: dict[str, str] = {
    FIRST_PAYMENT_STAGE: "First",
    FINAL_PAYMENT_STAGE: "Final",
}

DEFAULT_STAGE_COLOR = "bg-gray-500"


def stages_for(kind: ProjectKind | str) -> tuple[StageDescriptor, ...]:
    if ProjectKind(kind) is ProjectKind.LABS:
        return LABS_PROJECT_STAGES
    return CLIENT_PROJECT_STAGES


def default_stage(kind: ProjectKind | str) -> str:
    return stages_for(kind)[0].value


def _stage_values(kind: ProjectKind | str) -> list[str]:
    return [descriptor.value for descriptor in stages_for(kind)]


def stage_index(stage: str | None, kind: ProjectKind | str) -> int:
    """Position of ``stage`` within ``kind``'s table, or -1 when unknown."""

    values = _stage_values(kind)
    if stage not in values:
        return -1
    return values.index(stage)


def is_valid_stage(stage: str | None, kind: ProjectKind | str) -> bool:
    return stage_index(stage, kind) >= 0


def progress_percent(stage: str | None, kind: ProjectKind | str) -> float:
    index = stage_index(stage, kind)
    if index < 0:
        return 0.0
    return (index + 1) / len(stages_for(kind)) * 100


def is_before(stage: str | None, reference: str | None, kind: ProjectKind | str) -> bool:
    """Whether ``stage`` comes strictly before ``reference`` in ``kind``'s order."""

    index = stage_index(stage, kind)
    reference_index = stage_index(reference, kind)
    if index < 0 or reference_index < 0:
        return False
    return index < reference_index


def is_at(stage: str | None, reference: str | None, kind: ProjectKind | str) -> bool:
    return stage is not None and stage == reference and is_valid_stage(stage, kind)


def stage_state(stage: str, current: str | None, kind: ProjectKind | str) -> str:
    """UI state of ``stage`` given the project's ``current`` stage."""

    if is_at(stage, current, kind):
        return "active"
    if is_before(stage, current, kind):
        return "completed"
    return "upcoming"


def _find_descriptor(stage: str, kind: ProjectKind | str | None) -> StageDescriptor | None:
    tables = [stages_for(kind)] if kind is not None else []
    tables.extend([CLIENT_PROJECT_STAGES, LABS_PROJECT_STAGES])
    for table in tables:
        for descriptor in table:
            if descriptor.value == stage:
                return descriptor
    return None


def format_stage(stage: str, kind: ProjectKind | str | None = None) -> str:
    descriptor = _find_descriptor(stage, kind)
    if descriptor is not None:
        return descriptor.label
    return " ".join(word.capitalize() for word in stage.split("_"))


def stage_color(stage: str, kind: ProjectKind | str | None = None) -> str:
    descriptor = _find_descriptor(stage, kind)
    if descriptor is not None:
        return descriptor.color
    return DEFAULT_STAGE_COLOR
