"""
Scene Document - In-memory document context

Mirrors the host document closely enough for the engine to run against it:
a current page, a user-driven selection, font loading, notifications, and
nodes that reject malformed values on assignment. The plugin bridge ships the
page as a JSON snapshot; `from_snapshot` / `to_snapshot` convert both ways.
"""

import asyncio
import itertools
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from property_policy import TEXT_FONT_PROPERTIES

logger = logging.getLogger(__name__)

DEFAULT_FONT = {"family": "Inter", "style": "Regular"}
DEFAULT_AVAILABLE_FONTS = (
    ("Inter", "Regular"),
    ("Inter", "Medium"),
    ("Inter", "Bold"),
)


# ============================================
# ======= VALUE MODELS (host schema) =========
# ============================================

class RGBAColor(BaseModel):
    model_config = ConfigDict(extra='forbid')
    r: float = Field(ge=0.0, le=1.0)
    g: float = Field(ge=0.0, le=1.0)
    b: float = Field(ge=0.0, le=1.0)
    a: Optional[float] = Field(default=1.0, ge=0.0, le=1.0)


class ConstraintsKV(BaseModel):
    model_config = ConfigDict(extra='forbid')
    horizontal: Literal["MIN", "CENTER", "MAX", "STRETCH", "SCALE"]
    vertical: Literal["MIN", "CENTER", "MAX", "STRETCH", "SCALE"]


class FontName(BaseModel):
    model_config = ConfigDict(extra='forbid')
    family: str
    style: str


class Paint(BaseModel):
    model_config = ConfigDict(extra='allow')
    type: Literal[
        "SOLID", "GRADIENT_LINEAR", "GRADIENT_RADIAL", "GRADIENT_ANGULAR",
        "GRADIENT_DIAMOND", "IMAGE", "VIDEO",
    ]
    color: Optional[RGBAColor] = None
    opacity: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    visible: Optional[bool] = None

    @model_validator(mode="after")
    def _solid_needs_color(self) -> "Paint":
        if self.type == "SOLID" and self.color is None:
            raise ValueError("SOLID paint requires a color")
        return self


class Effect(BaseModel):
    model_config = ConfigDict(extra='allow')
    type: Literal["DROP_SHADOW", "INNER_SHADOW", "LAYER_BLUR", "BACKGROUND_BLUR"]
    radius: float = Field(default=0.0, ge=0.0)
    visible: bool = True
    color: Optional[RGBAColor] = None


_PAINTS = TypeAdapter(List[Paint])
_EFFECTS = TypeAdapter(List[Effect])


# ============================================
# ============ VALUE VALIDATORS ==============
# ============================================

def _number(minimum: Optional[float] = None, maximum: Optional[float] = None) -> Callable[[Any], Any]:
    def _check(value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected number, got {type(value).__name__}")
        if math.isnan(value) or math.isinf(value):
            raise ValueError("Expected a finite number")
        if minimum is not None and value < minimum:
            raise ValueError(f"Expected value >= {minimum}, got {value}")
        if maximum is not None and value > maximum:
            raise ValueError(f"Expected value <= {maximum}, got {value}")
        return value
    return _check


def _of_type(expected: type) -> Callable[[Any], Any]:
    def _check(value: Any) -> Any:
        if not isinstance(value, expected):
            raise TypeError(f"Expected {expected.__name__}, got {type(value).__name__}")
        return value
    return _check


def _one_of(*choices: str) -> Callable[[Any], Any]:
    def _check(value: Any) -> Any:
        if value not in choices:
            raise ValueError(f"Expected one of {', '.join(choices)}, got {value!r}")
        return value
    return _check


def _model(adapter_or_model: Any) -> Callable[[Any], Any]:
    def _check(value: Any) -> Any:
        if isinstance(adapter_or_model, TypeAdapter):
            adapter_or_model.validate_python(value)
        else:
            adapter_or_model.model_validate(value)
        return value
    return _check


def _corner_radii(value: Any) -> Any:
    if not isinstance(value, list) or len(value) != 4:
        raise ValueError("rectangleCornerRadii expects 4 values")
    for radius in value:
        _number(0)(radius)
    return value


def _number_list(value: Any) -> Any:
    if not isinstance(value, list):
        raise TypeError("Expected a list of numbers")
    for item in value:
        _number(0)(item)
    return value


_non_negative = _number(0)
_unit_interval = _number(0, 1)

VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    "name": _of_type(str),
    "visible": _of_type(bool),
    "locked": _of_type(bool),
    "isMask": _of_type(bool),
    "clipsContent": _of_type(bool),
    "characters": _of_type(str),
    "description": _of_type(str),
    "x": _number(),
    "y": _number(),
    "rotation": _number(),
    "width": _non_negative,
    "height": _non_negative,
    "opacity": _unit_interval,
    "cornerRadius": _non_negative,
    "cornerSmoothing": _unit_interval,
    "topLeftRadius": _non_negative,
    "topRightRadius": _non_negative,
    "bottomLeftRadius": _non_negative,
    "bottomRightRadius": _non_negative,
    "rectangleCornerRadii": _corner_radii,
    "strokeWeight": _non_negative,
    "dashPattern": _number_list,
    "itemSpacing": _number(),
    "paddingLeft": _non_negative,
    "paddingRight": _non_negative,
    "paddingTop": _non_negative,
    "paddingBottom": _non_negative,
    "fontSize": _number(1),
    "paragraphSpacing": _non_negative,
    "paragraphIndent": _non_negative,
    "layoutGrow": _number(0, 1),
    "pointCount": _number(3),
    "innerRadius": _unit_interval,
    "fills": _model(_PAINTS),
    "strokes": _model(_PAINTS),
    "effects": _model(_EFFECTS),
    "fontName": _model(FontName),
    "constraints": _model(ConstraintsKV),
    "layoutMode": _one_of("NONE", "HORIZONTAL", "VERTICAL"),
    "layoutWrap": _one_of("NO_WRAP", "WRAP"),
    "strokeAlign": _one_of("INSIDE", "OUTSIDE", "CENTER"),
    "textAlignHorizontal": _one_of("LEFT", "CENTER", "RIGHT", "JUSTIFIED"),
    "textAlignVertical": _one_of("TOP", "CENTER", "BOTTOM"),
    "textAutoResize": _one_of("NONE", "WIDTH_AND_HEIGHT", "HEIGHT", "TRUNCATE"),
    "textCase": _one_of("ORIGINAL", "UPPER", "LOWER", "TITLE"),
    "textDecoration": _one_of("NONE", "UNDERLINE", "STRIKETHROUGH"),
}


def _font_tuple(font: Any) -> Tuple[str, str]:
    parsed = FontName.model_validate(font)
    return parsed.family, parsed.style


# ============================================
# ================ SCENE NODE ================
# ============================================

def _default_properties(kind: str, index: int) -> Dict[str, Any]:
    props: Dict[str, Any] = {
        "name": f"{kind.title()} {index}",
        "visible": True,
        "locked": False,
        "opacity": 1,
        "x": 0,
        "y": 0,
        "width": 100,
        "height": 0 if kind == "LINE" else 100,
    }
    if kind == "TEXT":
        props.update({"characters": "", "fontName": dict(DEFAULT_FONT), "fontSize": 12})
    if kind in ("FRAME", "COMPONENT"):
        props.update({"layoutMode": "NONE", "clipsContent": True})
    return props


class SceneNode:
    """A node on the in-memory page. Rejects values the host would reject."""

    def __init__(self, document: "SceneDocument", node_id: str, kind: str, properties: Optional[Dict[str, Any]] = None):
        self._document = document
        self.id = node_id
        self.type = kind
        self.removed = False
        self._props: Dict[str, Any] = dict(properties or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._props.get(name, default)

    def set(self, name: str, value: Any) -> None:
        if self.removed:
            raise RuntimeError(f"The node with id {self.id!r} does not exist")
        if name in ("id", "type"):
            raise AttributeError(f"Cannot assign to read-only property {name!r}")
        if self.type == "TEXT" and name in TEXT_FONT_PROPERTIES:
            self._require_font(value if name == "fontName" else self._props.get("fontName"))
        validator = VALIDATORS.get(name)
        if validator is not None:
            validator(value)
        self._props[name] = value

    def _require_font(self, font: Any) -> None:
        if not self._document.is_font_loaded(font):
            raise RuntimeError(f"Cannot write to node with unloaded font {font!r}")

    @property
    def properties(self) -> Dict[str, Any]:
        return dict(self._props)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, **self._props}

    def __repr__(self) -> str:
        return f"SceneNode(id={self.id!r}, type={self.type!r})"


# ============================================
# ============== SCENE DOCUMENT ==============
# ============================================

class SceneDocument:
    """
    In-memory DocumentContext.

    Holds one page of top-level nodes and the user's selection. The engine
    never changes the selection; only the host (or a test) does.
    """

    CREATABLE = ("RECTANGLE", "TEXT", "FRAME", "COMPONENT", "LINE", "ELLIPSE")

    def __init__(self, page_name: str = "Page 1", available_fonts: Optional[Iterable[Tuple[str, str]]] = None):
        self.page_name = page_name
        self.children: List[SceneNode] = []
        self.notifications: List[str] = []
        self.available_fonts = set(available_fonts if available_fonts is not None else DEFAULT_AVAILABLE_FONTS)
        self._loaded_fonts: set = set()
        self._selection_ids: List[str] = []
        self._ids = itertools.count(1)

    # Selection
    @property
    def selection(self) -> List[SceneNode]:
        by_id = {node.id: node for node in self.children}
        return [by_id[i] for i in self._selection_ids if i in by_id]

    def set_selection(self, nodes: Iterable[Any]) -> None:
        self._selection_ids = [n if isinstance(n, str) else n.id for n in nodes]

    # Nodes
    def _next_id(self) -> str:
        while True:
            candidate = f"1:{next(self._ids)}"
            if self.find_node(candidate) is None:
                return candidate

    def create_node(self, kind: str) -> SceneNode:
        kind = kind.upper()
        if kind not in self.CREATABLE:
            raise ValueError(f"Cannot create node of type {kind}")
        node_id = self._next_id()
        count = sum(1 for n in self.children if n.type == kind) + 1
        return SceneNode(self, node_id, kind, _default_properties(kind, count))

    def append_to_page(self, node: SceneNode) -> None:
        if node not in self.children:
            self.children.append(node)

    def remove_node(self, node: SceneNode) -> None:
        if node in self.children:
            self.children.remove(node)
        node.removed = True
        self._selection_ids = [i for i in self._selection_ids if i != node.id]

    def find_node(self, node_id: str) -> Optional[SceneNode]:
        for node in self.children:
            if node.id == node_id:
                return node
        return None

    # Fonts
    async def load_font(self, font: Dict[str, Any]) -> None:
        key = _font_tuple(font)
        # Font loading is a suspension point on the host
        await asyncio.sleep(0)
        if key not in self.available_fonts:
            raise LookupError(f"The font \"{key[0]} {key[1]}\" could not be loaded")
        self._loaded_fonts.add(key)
        logger.debug(f"🔤 Font loaded: {key[0]} {key[1]}")

    def is_font_loaded(self, font: Any) -> bool:
        try:
            return _font_tuple(font) in self._loaded_fonts
        except Exception:
            return False

    # Notifications
    def notify(self, message: str) -> None:
        logger.info(f"🔔 {message}")
        self.notifications.append(message)

    # Snapshots
    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "page": {"name": self.page_name},
            "nodes": [node.to_dict() for node in self.children],
            "selection": list(self._selection_ids),
        }

    @classmethod
    def from_snapshot(cls, snapshot: Optional[Dict[str, Any]]) -> "SceneDocument":
        """Build a document from the plugin's page snapshot.

        Expected shape: { page?: {name}, nodes: [{id, type, ...props}],
        selection?: [id], fonts?: [{family, style}] }. Stored values are
        trusted as the host's own state and are not re-validated.
        """
        snapshot = snapshot or {}
        fonts = snapshot.get("fonts")
        available = [_font_tuple(f) for f in fonts] if fonts else None
        page = snapshot.get("page") or {}
        document = cls(page_name=page.get("name", "Page 1"), available_fonts=available)
        for raw in snapshot.get("nodes") or []:
            if not isinstance(raw, dict) or "id" not in raw or "type" not in raw:
                logger.warning(f"⚠️ Ignoring malformed node in snapshot: {raw!r}")
                continue
            props = {k: v for k, v in raw.items() if k not in ("id", "type")}
            document.children.append(SceneNode(document, str(raw["id"]), str(raw["type"]).upper(), props))
        document.set_selection(snapshot.get("selection") or [])
        return document
