import asyncio

import pytest

from command_executor import SUCCESS_MESSAGE, arrange_nodes, execute_commands
from command_parser import parse
from conftest import RED_FILL, batch_text, make_document, node_spec
from engine_errors import CommandExecutionError, FormatError, PropertyAssignError, UnsupportedKindError
from execution_result import (
    ADVISORY_EMPTY_SELECTION,
    ADVISORY_NO_MATCHING_NODES,
    ADVISORY_TOO_FEW_SELECTED,
    ADVISORY_UNKNOWN_COMMAND,
    ADVISORY_UNKNOWN_OPERATION,
)
from scene_document import SceneDocument


def run(document: SceneDocument, *commands: dict, progress_hook=None):
    return asyncio.run(execute_commands(document, parse(batch_text(*commands)), progress_hook=progress_hook))


CREATE_RECT = {"type": "create", "params": {"nodeType": "RECTANGLE", "properties": {"fills": RED_FILL}}}
CREATE_ELLIPSE = {"type": "create", "params": {"nodeType": "ELLIPSE", "properties": {}}}
DELETE = {"type": "delete", "params": {}}


# Arrange

def test_arrange_horizontal_packs_from_minimum_x() -> None:
    document = make_document(
        [
            node_spec("1:1", "RECTANGLE", x=50, width=20),
            node_spec("1:2", "RECTANGLE", x=10, width=20),
            node_spec("1:3", "RECTANGLE", x=30, width=20),
        ],
        selection=["1:1", "1:2", "1:3"],
    )
    run(document, {"type": "arrange", "params": {"operation": "horizontal", "spacing": 10}})

    positions = {node.id: node.get("x") for node in document.children}
    assert positions == {"1:2": 10, "1:3": 40, "1:1": 70}


def test_arrange_vertical_uses_default_spacing() -> None:
    document = make_document(
        [
            node_spec("1:1", "FRAME", y=100, height=50),
            node_spec("1:2", "FRAME", y=0, height=30),
        ],
        selection=["1:1", "1:2"],
    )
    run(document, {"type": "arrange", "params": {"operation": "VERTICAL"}})

    assert document.find_node("1:2").get("y") == 0
    assert document.find_node("1:1").get("y") == 40
    # x is untouched
    assert document.find_node("1:1").get("x") == 0


def test_arrange_honours_explicit_zero_spacing() -> None:
    document = make_document(
        [node_spec("1:1", "RECTANGLE", x=0, width=30), node_spec("1:2", "RECTANGLE", x=100, width=30)],
        selection=["1:1", "1:2"],
    )
    run(document, {"type": "arrange", "params": {"operation": "horizontal", "spacing": 0}})
    assert document.find_node("1:2").get("x") == 30


def test_arrange_breaks_ties_by_selection_order() -> None:
    document = make_document(
        [node_spec("1:1", "RECTANGLE", x=5, width=10), node_spec("1:2", "RECTANGLE", x=5, width=20)],
        selection=["1:2", "1:1"],
    )
    ordered = arrange_nodes(document.selection, "horizontal", 10)

    assert [n.id for n in ordered] == ["1:2", "1:1"]
    assert document.find_node("1:2").get("x") == 5
    assert document.find_node("1:1").get("x") == 35


def test_arrange_with_fewer_than_two_selected_is_a_notice() -> None:
    document = make_document([node_spec("1:1", "RECTANGLE", x=40)], selection=["1:1"])
    result = run(document, {"type": "arrange", "params": {"operation": "horizontal"}})

    assert [a.code for a in result.advisories] == [ADVISORY_TOO_FEW_SELECTED]
    assert "Select at least 2 nodes to arrange" in document.notifications
    assert document.find_node("1:1").get("x") == 40


def test_arrange_unknown_operation_is_a_notice() -> None:
    document = make_document(
        [node_spec("1:1", "RECTANGLE", x=40), node_spec("1:2", "RECTANGLE", x=0)],
        selection=["1:1", "1:2"],
    )
    result = run(document, {"type": "arrange", "params": {"operation": "diagonal"}})
    assert [a.code for a in result.advisories] == [ADVISORY_UNKNOWN_OPERATION]
    assert document.find_node("1:1").get("x") == 40


# Create / delete

def test_create_then_delete_with_empty_selection() -> None:
    document = SceneDocument()
    result = run(document, CREATE_RECT, DELETE)

    assert len(document.children) == 1
    assert document.children[0].get("fills") == [RED_FILL]
    assert result.created_node_ids == [document.children[0].id]
    assert result.executed == 2
    assert [a.code for a in result.advisories] == [ADVISORY_EMPTY_SELECTION]
    assert document.notifications == ["No nodes selected for deletion", SUCCESS_MESSAGE]


def test_delete_removes_every_selected_node() -> None:
    document = make_document(
        [node_spec("1:1", "RECTANGLE"), node_spec("1:2", "TEXT"), node_spec("1:3", "ELLIPSE")],
        selection=["1:1", "1:3"],
    )
    run(document, DELETE)
    assert [n.id for n in document.children] == ["1:2"]
    assert document.selection == []


def test_create_does_not_join_selection_for_later_commands() -> None:
    document = SceneDocument()
    result = run(
        document,
        CREATE_RECT,
        {"type": "modify", "params": {"nodeTypes": ["RECTANGLE"], "properties": {"opacity": 0.3}}},
    )
    assert document.children[0].get("opacity") == 1
    assert [a.code for a in result.advisories] == [ADVISORY_NO_MATCHING_NODES]


def test_command_types_are_case_insensitive() -> None:
    document = SceneDocument()
    run(document, {"type": "CREATE", "params": {"nodeType": "line", "properties": {}}})
    assert document.children[0].type == "LINE"


def test_style_behaves_like_modify() -> None:
    document = make_document([node_spec("1:1", "TEXT")], selection=["1:1"])
    run(document, {"type": "style", "params": {"nodeTypes": "TEXT", "properties": {"fontSize": 32}}})
    assert document.find_node("1:1").get("fontSize") == 32


# Failure handling

def test_failing_command_aborts_rest_but_keeps_earlier_effects() -> None:
    document = make_document([node_spec("1:1", "RECTANGLE")], selection=["1:1"])
    with pytest.raises(CommandExecutionError) as exc_info:
        run(
            document,
            CREATE_RECT,
            {"type": "modify", "params": {"nodeTypes": "RECTANGLE", "properties": {"opacity": 7}}},
            CREATE_ELLIPSE,
        )
    err = exc_info.value
    assert err.command_type == "modify"
    assert err.index == 1
    assert isinstance(err.cause, PropertyAssignError)
    assert err.details["cause"]["code"] == "property_assign_failed"

    kinds = [n.type for n in document.children]
    assert kinds == ["RECTANGLE", "RECTANGLE"]
    assert "ELLIPSE" not in kinds
    assert SUCCESS_MESSAGE not in document.notifications


def test_unsupported_kind_aborts_batch() -> None:
    document = SceneDocument()
    with pytest.raises(CommandExecutionError) as exc_info:
        run(document, {"type": "create", "params": {"nodeType": "STAR", "properties": {}}}, CREATE_RECT)
    assert exc_info.value.command_type == "create"
    assert isinstance(exc_info.value.cause, UnsupportedKindError)
    assert document.children == []


def test_failed_create_leaves_no_partial_node() -> None:
    document = SceneDocument()
    with pytest.raises(CommandExecutionError):
        run(document, {"type": "create", "params": {"nodeType": "RECTANGLE", "properties": {"x": 5, "width": -1}}})
    assert document.children == []


def test_params_that_are_not_a_mapping_fail() -> None:
    document = SceneDocument()
    with pytest.raises(CommandExecutionError) as exc_info:
        run(document, {"type": "create", "params": ["RECTANGLE"]})
    assert exc_info.value.command_type == "create"
    assert isinstance(exc_info.value.cause, FormatError)


def test_missing_required_params_fail() -> None:
    document = SceneDocument()
    with pytest.raises(CommandExecutionError) as exc_info:
        run(document, {"type": "modify", "params": {"properties": {"opacity": 0.5}}})
    assert isinstance(exc_info.value.cause, FormatError)
    assert exc_info.value.cause.details["command_type"] == "modify"


def test_unknown_command_type_is_skipped() -> None:
    document = SceneDocument()
    result = run(document, CREATE_RECT, {"type": "teleport", "params": {}}, CREATE_ELLIPSE)

    assert [n.type for n in document.children] == ["RECTANGLE", "ELLIPSE"]
    assert result.executed == 2
    assert result.skipped == 1
    assert [a.code for a in result.advisories] == [ADVISORY_UNKNOWN_COMMAND]
    assert document.notifications == [SUCCESS_MESSAGE]


@pytest.mark.parametrize("params", ["in", None, ["fast"]])
def test_unknown_command_type_is_skipped_whatever_its_params(params) -> None:
    document = SceneDocument()
    result = run(document, CREATE_RECT, {"type": "zoom", "params": params}, CREATE_ELLIPSE)

    assert [n.type for n in document.children] == ["RECTANGLE", "ELLIPSE"]
    assert result.skipped == 1
    assert result.advisories[0].command_type == "zoom"


def test_progress_hook_sees_each_command_in_order() -> None:
    events = []

    async def hook(event: dict) -> None:
        events.append((event["status"], event["index"], event["command_type"]))

    run(SceneDocument(), CREATE_RECT, {"type": "zoom", "params": {}}, DELETE, progress_hook=hook)
    assert events == [
        ("command_started", 0, "create"),
        ("command_succeeded", 0, "create"),
        ("command_skipped", 1, "zoom"),
        ("command_started", 2, "delete"),
        ("command_succeeded", 2, "delete"),
    ]


def test_failing_progress_hook_does_not_break_batch() -> None:
    async def hook(event: dict) -> None:
        raise RuntimeError("socket closed")

    document = SceneDocument()
    result = run(document, CREATE_RECT, progress_hook=hook)
    assert result.executed == 1
