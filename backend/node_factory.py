"""
Node Factory - Create scene nodes from `create` commands
"""

import logging
from typing import Any, Dict, List, Optional

from document_context import DocumentContext, SceneNodeHandle
from engine_errors import UnsupportedKindError
from execution_result import Advisory
from node_properties import apply_properties, fonts_required, load_fonts

logger = logging.getLogger(__name__)

CREATABLE_KINDS = frozenset({"RECTANGLE", "TEXT", "FRAME", "COMPONENT", "LINE", "ELLIPSE"})


def resolve_kind(node_type: Any) -> str:
    """Upper-case `node_type` and check it against the creatable kinds."""
    kind = node_type.strip().upper() if isinstance(node_type, str) else None
    if kind not in CREATABLE_KINDS:
        raise UnsupportedKindError(node_type)
    return kind


async def create_node(
    ctx: DocumentContext,
    node_type: Any,
    properties: Optional[Dict[str, Any]] = None,
    advisories: Optional[List[Advisory]] = None,
) -> SceneNodeHandle:
    """Construct a node and apply its initial properties.

    The node is returned detached; appending it to the page is the caller's
    step, so a node whose properties fail is never added to the document.

    Raises:
        UnsupportedKindError: `node_type` is not creatable.
        FontLoadError: a TEXT node's font could not be loaded.
        PropertyAssignError: the document rejected a property value.
    """
    properties = properties or {}
    kind = resolve_kind(node_type)
    logger.info(f"🧱 Creating node: type={kind}, properties={list(properties.keys())}")

    node = ctx.create_node(kind)
    if kind == "TEXT":
        await load_fonts(ctx, fonts_required([node], properties))

    apply_properties(node, properties, advisories, command_type="create")
    return node
