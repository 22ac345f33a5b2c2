"""
Shared property application for the node factory and the selection mutator.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from document_context import DocumentContext, SceneNodeHandle
from engine_errors import FontLoadError, PropertyAssignError
from execution_result import ADVISORY_PROPERTY_SKIPPED, Advisory
from property_policy import TEXT_FONT_PROPERTIES, is_writable, node_kind, normalize

logger = logging.getLogger(__name__)


def _font_key(font: Any) -> str:
    if isinstance(font, dict):
        return repr((font.get("family"), font.get("style")))
    return repr(font)


def fonts_required(nodes: Iterable[SceneNodeHandle], properties: Dict[str, Any]) -> List[Any]:
    """Fonts that must be loaded before `properties` may touch `nodes`.

    The requested `fontName` comes first; the current font of each TEXT target
    follows when a font-dependent text property is being written.
    """
    text_nodes = [n for n in nodes if node_kind(n) == "TEXT"]
    if not text_nodes:
        return []

    fonts: List[Any] = []
    seen = set()

    def _add(font: Any) -> None:
        key = _font_key(font)
        if font is not None and key not in seen:
            seen.add(key)
            fonts.append(font)

    if "fontName" in properties:
        _add(properties["fontName"])
    if any(name in TEXT_FONT_PROPERTIES for name in properties if name != "fontName"):
        for node in text_nodes:
            _add(node.get("fontName"))
    return fonts


async def load_fonts(ctx: DocumentContext, fonts: List[Any]) -> None:
    for font in fonts:
        try:
            logger.info(f"🔤 Loading font: {font}")
            await ctx.load_font(font)
        except Exception as e:
            logger.error(f"❌ Font loading failed: font={font}, error={e}")
            raise FontLoadError(font, e) from e


def apply_properties(
    node: SceneNodeHandle,
    properties: Dict[str, Any],
    advisories: Optional[List[Advisory]] = None,
    command_type: Optional[str] = None,
) -> int:
    """Apply a property set to one node in iteration order.

    Blocked properties are skipped with a warning. A value the document rejects
    aborts with PropertyAssignError. Returns the number of properties written.
    """
    kind = node_kind(node)
    written = 0
    for key, value in properties.items():
        if not is_writable(kind, key):
            logger.warning(f"⚠️ Skipping invalid or read-only property: {key} on {kind}")
            if advisories is not None:
                advisories.append(Advisory(
                    code=ADVISORY_PROPERTY_SKIPPED,
                    message=f"Skipped read-only or unsupported property {key} on {kind}",
                    command_type=command_type,
                    details={"property": key, "node_kind": kind, "node_id": getattr(node, "id", None)},
                    user_visible=False,
                ))
            continue
        try:
            logger.debug(f"🖊️ Setting property: key={key}, value={value!r}, node_type={kind}")
            node.set(key, normalize(key, value))
            written += 1
        except Exception as e:
            logger.error(f"❌ Property set failed: key={key}, value={value!r}, node_type={kind}, error={e}")
            raise PropertyAssignError(key, value, kind, e) from e
    return written
