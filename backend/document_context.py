"""
Document Context - The host document as seen by the engine

The engine never owns nodes. Every component receives a context explicitly and
reads the current page and selection through it.
"""

from typing import Any, Dict, List, Protocol, runtime_checkable


@runtime_checkable
class SceneNodeHandle(Protocol):
    """A node owned by the host document."""

    id: str
    type: str

    def get(self, name: str, default: Any = None) -> Any: ...

    def set(self, name: str, value: Any) -> None:
        """Assign a property; raises when the document rejects the value."""
        ...


@runtime_checkable
class DocumentContext(Protocol):
    @property
    def selection(self) -> List[SceneNodeHandle]:
        """The live selection on the current page, read fresh on every access."""
        ...

    def create_node(self, kind: str) -> SceneNodeHandle:
        """Construct a detached node of an upper-case creatable kind."""
        ...

    def append_to_page(self, node: SceneNodeHandle) -> None: ...

    def remove_node(self, node: SceneNodeHandle) -> None: ...

    async def load_font(self, font: Dict[str, Any]) -> None:
        """Load a font asset; raises when the font is unavailable."""
        ...

    def notify(self, message: str) -> None:
        """Show a user-visible notice."""
        ...
