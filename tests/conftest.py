import json
from typing import Any, Dict, List, Optional

import pytest

from scene_document import SceneDocument, SceneNode


INTER_REGULAR = {"family": "Inter", "style": "Regular"}
INTER_BOLD = {"family": "Inter", "style": "Bold"}
RED_FILL = {"type": "SOLID", "color": {"r": 1, "g": 0, "b": 0}}


class FakeRelay:
    """Returns canned model text and records what it was sent."""

    def __init__(self, response: Any = None, error: Optional[BaseException] = None):
        if response is not None and not isinstance(response, str):
            response = json.dumps(response)
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def send(self, prompt: str, system_prompt: str = "") -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt})
        if self.error is not None:
            raise self.error
        return self.response


class RecordingNode(SceneNode):
    def set(self, name: str, value: Any) -> None:
        self._document.events.append(("set", name))
        super().set(name, value)


class RecordingDocument(SceneDocument):
    """SceneDocument that records font loads and property writes in order."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.events: List[Any] = []

    def create_node(self, kind: str) -> SceneNode:
        node = super().create_node(kind)
        return RecordingNode(self, node.id, node.type, node.properties)

    async def load_font(self, font: Dict[str, Any]) -> None:
        self.events.append(("load", (font.get("family"), font.get("style"))))
        await super().load_font(font)


def node_spec(node_id: str, kind: str, **props: Any) -> Dict[str, Any]:
    spec = {"id": node_id, "type": kind, "x": 0, "y": 0, "width": 100, "height": 100, "opacity": 1}
    if kind == "TEXT":
        spec.update({"characters": "", "fontName": dict(INTER_REGULAR), "fontSize": 12})
    spec.update(props)
    return spec


def make_document(nodes: List[Dict[str, Any]], selection: Optional[List[str]] = None, cls: type = SceneDocument) -> SceneDocument:
    return cls.from_snapshot({"nodes": nodes, "selection": selection or []})


def batch_text(*commands: Dict[str, Any]) -> str:
    return json.dumps({"commands": list(commands)})


@pytest.fixture
def document() -> SceneDocument:
    return SceneDocument()
