from __future__ import annotations

import pytest

from portal.core.stages import (
    BILLABLE_MILESTONES,
    ProjectKind,
    default_stage,
    format_stage,
    is_before,
    is_valid_stage,
    progress_percent,
    stage_color,
    stage_state,
    stages_for,
)


def test_stage_tables_per_kind() -> None:
    assert [stage.value for stage in stages_for(ProjectKind.CLIENT)] == [
        "kick_off",
        "pay_first",
        "deliver",
        "revise",
        "pay_final",
        "completed",
    ]
    assert [stage.value for stage in stages_for("labs")] == ["concept", "mvp", "development", "launched"]
    assert default_stage(ProjectKind.CLIENT) == "kick_off"
    assert default_stage(ProjectKind.LABS) == "concept"


def test_stage_validity_is_per_kind() -> None:
    assert is_valid_stage("pay_first", ProjectKind.CLIENT) is True
    assert is_valid_stage("pay_first", ProjectKind.LABS) is False
    assert is_valid_stage("mvp", ProjectKind.LABS) is True
    assert is_valid_stage(None, ProjectKind.CLIENT) is False


def test_progress_and_ordering() -> None:
    assert progress_percent("kick_off", ProjectKind.CLIENT) == pytest.approx(100 / 6)
    assert progress_percent("completed", ProjectKind.CLIENT) == 100.0
    assert progress_percent("launched", ProjectKind.LABS) == 100.0
    assert progress_percent("unknown", ProjectKind.CLIENT) == 0.0

    assert is_before("kick_off", "deliver", ProjectKind.CLIENT) is True
    assert is_before("deliver", "kick_off", ProjectKind.CLIENT) is False
    assert is_before("kick_off", "unknown", ProjectKind.CLIENT) is False


def test_stage_state_for_timeline() -> None:
    assert stage_state("kick_off", "deliver", ProjectKind.CLIENT) == "completed"
    assert stage_state("deliver", "deliver", ProjectKind.CLIENT) == "active"
    assert stage_state("completed", "deliver", ProjectKind.CLIENT) == "upcoming"


def test_labels_and_colors_fall_back_across_kinds() -> None:
    assert format_stage("mvp") == "Building MVP"
    assert format_stage("mvp", ProjectKind.CLIENT) == "Building MVP"
    assert format_stage("some_custom_stage") == "Some Custom Stage"
    assert stage_color("completed", ProjectKind.CLIENT) == "bg-green-500"
    assert stage_color("nope") == "bg-gray-500"


def test_only_payment_stages_are_billable() -> None:
    assert BILLABLE_MILESTONES == {"pay_first": "First", "pay_final": "Final"}
