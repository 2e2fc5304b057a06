from __future__ import annotations

import pytest

from tag_index.models import (
    Image,
    ListItem,
    Paragraph,
    PendingSpan,
    Phase,
    RunState,
    TagEntry,
    element_from_dict,
    element_to_dict,
)


def test_run_state_defaults():
    state = RunState()

    assert state.phase is Phase.GATHERING
    assert state.scan_cursor == 0
    assert state.last_anchor is None
    assert state.in_index_region is False
    assert state.index_heading_created is False
    assert state.tag_index == {}
    assert state.pending == []
    assert state.entry_count == 0


def test_elements_are_immutable_values():
    paragraph = Paragraph("Met with Bob #people")

    with pytest.raises(AttributeError):
        paragraph.text = "changed"  # type: ignore[misc]
    assert paragraph == Paragraph("Met with Bob #people")


def test_run_state_survives_serialization():
    entry = TagEntry(
        tag="#goals",
        anchor="Jan 1",
        elements=[
            Paragraph("Big plan #goals_+2"),
            ListItem("Save money", marker="*", indent="  "),
            Image("img/chart.png", alt="chart", width=320, height=200),
        ],
    )
    state = RunState(
        phase=Phase.WRITING,
        scan_cursor=12,
        removed_count=3,
        last_anchor="Jan 1",
        in_index_region=True,
        index_heading_created=True,
        tag_index={"#goals": [entry], "#people": []},
        pending=[PendingSpan(tag="#x", remaining=1, entry=TagEntry("#x", "Jan 1"))],
        sorted_tags=["#goals", "#people"],
        tag_cursor=1,
        entry_cursor=2,
    )

    assert RunState.from_dict(state.to_dict()) == state


def test_tag_index_keeps_insertion_order_through_serialization():
    state = RunState(tag_index={"#zeta": [], "#alpha": [], "#mid": []})

    restored = RunState.from_dict(state.to_dict())

    assert list(restored.tag_index) == ["#zeta", "#alpha", "#mid"]


def test_from_dict_rejects_other_versions():
    data = RunState().to_dict()
    data["version"] = 99

    with pytest.raises(ValueError):
        RunState.from_dict(data)


def test_from_dict_rejects_missing_fields():
    data = RunState().to_dict()
    del data["scan_cursor"]

    with pytest.raises(KeyError):
        RunState.from_dict(data)


def test_from_dict_rejects_ill_typed_cursor():
    data = RunState().to_dict()
    data["tag_cursor"] = "3"

    with pytest.raises(TypeError):
        RunState.from_dict(data)


def test_element_from_dict_rejects_unknown_kind():
    with pytest.raises(ValueError):
        element_from_dict({"kind": "table"})


def test_element_to_dict_rejects_unknown_type():
    with pytest.raises(TypeError):
        element_to_dict("plain string")  # type: ignore[arg-type]
