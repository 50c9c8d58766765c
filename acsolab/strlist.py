"""An ordered list of typed strings that can be concatenated by type."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TextIO


@dataclass
class StringProcNode:
    """One entry of the list: an 8-bit type and a string."""

    kind: int
    text: str


class StringProcList:
    """Strings tagged with a type, kept in insertion order."""

    def __init__(self) -> None:
        self._nodes: list[StringProcNode] = []

    @property
    def first(self) -> StringProcNode | None:
        return self._nodes[0] if self._nodes else None

    @property
    def last(self) -> StringProcNode | None:
        return self._nodes[-1] if self._nodes else None

    def add_node(self, kind: int, text: str) -> StringProcNode:
        """Append a new entry and return it."""
        if not 0 <= kind <= 0xFF:
            raise ValueError(f"type must fit in 8 bits, got {kind}")
        node = StringProcNode(kind, text)
        self._nodes.append(node)
        return node

    def concat(self, kind: int, text: str) -> str:
        """Return text followed by every entry of the given type, in order."""
        return text + "".join(node.text for node in self._nodes if node.kind == kind)

    def print_to(self, file: TextIO) -> None:
        """Write the length and every entry to file."""
        file.write(f"List length: {len(self._nodes)}\n")
        for node in self._nodes:
            file.write(f"\tnode hash: {node.text} | type: {node.kind}\n")

    def __iter__(self) -> Iterator[StringProcNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)