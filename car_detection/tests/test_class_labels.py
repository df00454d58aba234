from __future__ import annotations

from pathlib import Path

import pytest

from car_detection.app.services.class_labels import UNKNOWN_LABEL, ClassLabelTable


def test_default_table() -> None:
    table = ClassLabelTable()

    assert table.label_for(0) == "car"
    assert table.label_for(1) == "car-tire"
    assert table.label_for(2) == UNKNOWN_LABEL
    assert table.label_for(-3) == UNKNOWN_LABEL
    assert len(table) == 2


def test_from_yaml_mapping(tmp_path: Path) -> None:
    path = tmp_path / "labels.yaml"
    path.write_text(
        "\n".join(
            [
                "labels:",
                "  0: car",
                "  1: car-tire",
                "  2: license-plate",
            ]
        )
    )

    table = ClassLabelTable.from_yaml(path)

    assert table.label_for(2) == "license-plate"
    assert dict(table) == {0: "car", 1: "car-tire", 2: "license-plate"}


def test_from_yaml_list(tmp_path: Path) -> None:
    path = tmp_path / "labels.yaml"
    path.write_text("- car\n- car-tire\n- wheel-rim\n")

    table = ClassLabelTable.from_yaml(path)

    assert table.label_for(2) == "wheel-rim"


def test_from_yaml_without_labels(tmp_path: Path) -> None:
    path = tmp_path / "labels.yaml"
    path.write_text("model_name: car-detector\n")

    with pytest.raises(ValueError):
        ClassLabelTable.from_yaml(path)


def test_with_labels_leaves_base_table_unchanged() -> None:
    base = ClassLabelTable()
    extended = base.with_labels({1: "tire"})

    assert extended.label_for(1) == "tire"
    assert base.label_for(1) == "car-tire"
