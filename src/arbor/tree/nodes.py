"""In-memory node types for one filesystem entry each."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

DIRECTORY = "directory"
FILE = "file"
LINK = "link"
UNKNOWN = "unknown"

KINDS = (DIRECTORY, FILE, LINK, UNKNOWN)


@dataclass(slots=True)
class Node:
    kind: ClassVar[str] = UNKNOWN

    id: str
    name: str
    parent_path: str | None
    path: str
    # Real path of a symlink whose target kind this node adopted.
    link_target: str | None = None

    @property
    def is_link(self) -> bool:
        return self.link_target is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "parent_path": self.parent_path,
            "path": self.path,
            "type": self.kind,
        }
        if self.link_target is not None:
            data["link_target"] = self.link_target
        return data


@dataclass(slots=True)
class Directory(Node):
    kind: ClassVar[str] = DIRECTORY

    children: list[Node] = field(default_factory=list)
    loaded: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = Node.to_dict(self)
        data["loaded"] = self.loaded
        data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(slots=True)
class File(Node):
    kind: ClassVar[str] = FILE

    extension: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = Node.to_dict(self)
        data["extension"] = self.extension
        return data


@dataclass(slots=True)
class Link(Node):
    """Symlink that could not be placed as a file or directory."""

    kind: ClassVar[str] = LINK

    target_path: str | None = None
    resolved_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = Node.to_dict(self)
        data["target_path"] = self.target_path
        data["resolved_type"] = self.resolved_type
        return data


@dataclass(slots=True)
class Unknown(Node):
    kind: ClassVar[str] = UNKNOWN


def iter_nodes(nodes: list[Node]):
    """Yield every node in ``nodes`` and below, depth first, without recursion."""
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, Directory):
            stack.extend(reversed(node.children))
