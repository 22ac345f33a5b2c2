"""
Property Policy - Which properties a command may write, and in what shape

Model output is unconstrained JSON; this layer decides per (node kind, property)
whether a write is allowed and coerces scalar/list shapes into the shape the
document expects. All functions here are pure.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Union

logger = logging.getLogger(__name__)


class WritabilityDecision(str, Enum):
    WRITABLE = "writable"
    BLOCKED = "blocked"


# Identity, computed geometry and variable links are owned by the document
DENYLIST: FrozenSet[str] = frozenset({
    "id",
    "type",
    "absoluteTransform",
    "absoluteBoundingBox",
    "absoluteRenderBounds",
    "attachedConnectors",
    "boundVariables",
    "fillGeometry",
    "inferredVariables",
})


# ============================================
# ========== WRITABLE PROPERTY TABLE =========
# ============================================

_SCENE = {"name", "visible", "locked"}
_BLEND = {"opacity", "blendMode", "isMask", "effects", "effectStyleId"}
_LAYOUT = {"x", "y", "width", "height", "rotation", "constraints", "layoutAlign", "layoutGrow"}
_GEOMETRY = {
    "fills", "strokes", "strokeWeight", "strokeAlign", "strokeCap", "strokeJoin",
    "dashPattern", "fillStyleId", "strokeStyleId",
}
_CORNERS = {
    "cornerRadius", "cornerSmoothing", "rectangleCornerRadii",
    "topLeftRadius", "topRightRadius", "bottomLeftRadius", "bottomRightRadius",
}
_FRAME = {
    "layoutMode", "itemSpacing", "paddingLeft", "paddingRight", "paddingTop", "paddingBottom",
    "primaryAxisAlignItems", "counterAxisAlignItems", "primaryAxisSizingMode",
    "counterAxisSizingMode", "clipsContent", "layoutWrap",
}
_TEXT = {
    "characters", "fontName", "fontSize", "textAlignHorizontal", "textAlignVertical",
    "textAutoResize", "textCase", "textDecoration", "letterSpacing", "lineHeight",
    "paragraphSpacing", "paragraphIndent",
}

_BASE = _SCENE | _BLEND | _LAYOUT

# Text edits the host only accepts once the node's font is loaded
TEXT_FONT_PROPERTIES: FrozenSet[str] = frozenset(_TEXT - {"textAlignHorizontal", "textAlignVertical"})

WRITABLE_PROPERTIES: Dict[str, FrozenSet[str]] = {
    "RECTANGLE": frozenset(_BASE | _GEOMETRY | _CORNERS),
    "ELLIPSE": frozenset(_BASE | _GEOMETRY | {"arcData"}),
    "LINE": frozenset(_BASE | _GEOMETRY),
    "TEXT": frozenset(_BASE | _GEOMETRY | _TEXT),
    "FRAME": frozenset(_BASE | _GEOMETRY | _CORNERS | _FRAME),
    "COMPONENT": frozenset(_BASE | _GEOMETRY | _CORNERS | _FRAME | {"description"}),
    "INSTANCE": frozenset(_BASE | _GEOMETRY | _CORNERS | _FRAME),
    "POLYGON": frozenset(_BASE | _GEOMETRY | {"pointCount"}),
    "STAR": frozenset(_BASE | _GEOMETRY | {"pointCount", "innerRadius"}),
    "VECTOR": frozenset(_BASE | _GEOMETRY),
    "GROUP": frozenset(_SCENE | _BLEND | {"x", "y", "rotation"}),
}


# ============================================
# =============== NORMALIZERS ================
# ============================================

def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return value
    return float(str(value).strip())


def _wrap_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def _corner_radii(value: Any) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value, value, value, value]


NORMALIZERS: Dict[str, Callable[[Any], Any]] = {
    "cornerRadius": _to_number,
    "rectangleCornerRadii": _corner_radii,
    "fills": _wrap_list,
    "strokes": _wrap_list,
    "effects": _wrap_list,
}


# ============================================
# ================ PUBLIC API ================
# ============================================

def node_kind(node_or_kind: Union[str, Any]) -> str:
    """Return the upper-cased kind of a node handle or a kind name."""
    if isinstance(node_or_kind, str):
        return node_or_kind.upper()
    return str(getattr(node_or_kind, "type", "")).upper()


def writability(node_or_kind: Union[str, Any], property_name: str) -> WritabilityDecision:
    if property_name in DENYLIST:
        return WritabilityDecision.BLOCKED
    allowed = WRITABLE_PROPERTIES.get(node_kind(node_or_kind), frozenset())
    if property_name in allowed:
        return WritabilityDecision.WRITABLE
    return WritabilityDecision.BLOCKED


def is_writable(node_or_kind: Union[str, Any], property_name: str) -> bool:
    """True when `property_name` may be assigned on a node of this kind.

    Denylisted names are blocked for every kind, including kinds the table
    does not know about.
    """
    return writability(node_or_kind, property_name) is WritabilityDecision.WRITABLE


def normalize(property_name: str, raw_value: Any) -> Any:
    """Coerce a raw model value into the shape the document expects.

    Raises ValueError/TypeError when a numeric coercion is impossible; callers
    treat that the same as the document rejecting the value.
    """
    normalizer = NORMALIZERS.get(property_name)
    if normalizer is None:
        return raw_value
    return normalizer(raw_value)
