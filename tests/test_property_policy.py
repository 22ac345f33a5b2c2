import pytest

from property_policy import (
    DENYLIST,
    WRITABLE_PROPERTIES,
    WritabilityDecision,
    is_writable,
    normalize,
    writability,
)
from scene_document import SceneDocument


@pytest.mark.parametrize("kind", sorted(WRITABLE_PROPERTIES) + ["STICKY", "PAGE"])
def test_denylisted_properties_are_blocked_for_every_kind(kind: str) -> None:
    for name in DENYLIST:
        assert is_writable(kind, name) is False
        assert writability(kind, name) is WritabilityDecision.BLOCKED


def test_denylist_contents() -> None:
    assert DENYLIST == {
        "id", "type", "absoluteTransform", "absoluteBoundingBox", "absoluteRenderBounds",
        "attachedConnectors", "boundVariables", "fillGeometry", "inferredVariables",
    }


def test_is_writable_accepts_node_handles() -> None:
    node = SceneDocument().create_node("RECTANGLE")
    assert is_writable(node, "cornerRadius") is True
    assert is_writable(node, "fills") is True
    assert is_writable(node, "characters") is False


def test_kind_lookup_is_case_insensitive() -> None:
    assert is_writable("text", "characters") is True
    assert writability("Frame", "layoutMode") is WritabilityDecision.WRITABLE


def test_property_without_mutator_on_kind_is_blocked() -> None:
    assert is_writable("ELLIPSE", "cornerRadius") is False
    assert is_writable("LINE", "layoutMode") is False
    assert is_writable("RECTANGLE", "madeUpProperty") is False


def test_unknown_kind_has_no_writable_properties() -> None:
    assert is_writable("STICKY", "name") is False


def test_corner_radius_is_coerced_to_number() -> None:
    assert normalize("cornerRadius", "8") == 8.0
    assert normalize("cornerRadius", 4) == 4
    with pytest.raises(ValueError):
        normalize("cornerRadius", "rounded")


def test_rectangle_corner_radii_scalar_expands_to_four() -> None:
    assert normalize("rectangleCornerRadii", 6) == [6, 6, 6, 6]


def test_rectangle_corner_radii_list_passes_through() -> None:
    radii = [1, 2, 3, 4]
    assert normalize("rectangleCornerRadii", radii) is radii


@pytest.mark.parametrize("name", ["fills", "strokes", "effects"])
def test_paint_like_properties_always_become_lists(name: str) -> None:
    value = {"type": "SOLID", "color": {"r": 0, "g": 0, "b": 1}}
    assert normalize(name, value) == [value]

    already = [value, value]
    assert normalize(name, already) is already
    assert normalize(name, (value,)) == [value]
    assert normalize(name, []) == []


def test_other_properties_pass_through_unchanged() -> None:
    payload = {"horizontal": "MIN", "vertical": "MAX"}
    assert normalize("constraints", payload) is payload
    assert normalize("x", "12") == "12"
    assert normalize("characters", "Hello") == "Hello"
