"""
Selection Mutator - Apply `modify` / `style` commands to the current selection
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from document_context import DocumentContext, SceneNodeHandle
from execution_result import ADVISORY_NO_MATCHING_NODES, Advisory
from node_properties import apply_properties, fonts_required, load_fonts
from property_policy import node_kind

logger = logging.getLogger(__name__)


async def apply_to_selection(
    ctx: DocumentContext,
    node_kinds: Iterable[str],
    properties: Optional[Dict[str, Any]] = None,
    advisories: Optional[List[Advisory]] = None,
    command_type: str = "modify",
) -> List[SceneNodeHandle]:
    """Apply `properties` to every selected node whose kind is in `node_kinds`.

    An empty match is a notice, not an error. Returns the nodes touched.
    """
    properties = properties or {}
    kinds = [str(k).upper() for k in node_kinds]
    logger.info(f"🎯 Modifying selection: node_types={kinds}, properties={list(properties.keys())}")

    targets = [node for node in ctx.selection if node_kind(node) in kinds]
    if not targets:
        message = f"No selected nodes of type: {', '.join(kinds)}"
        logger.info(f"ℹ️ {message}")
        ctx.notify(message)
        if advisories is not None:
            advisories.append(Advisory(
                code=ADVISORY_NO_MATCHING_NODES,
                message=message,
                command_type=command_type,
                details={"node_types": kinds},
            ))
        return []

    await load_fonts(ctx, fonts_required(targets, properties))

    for node in targets:
        apply_properties(node, properties, advisories, command_type=command_type)
    logger.info(f"✅ Applied {len(properties)} propert(ies) to {len(targets)} node(s)")
    return targets
