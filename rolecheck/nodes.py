"""Position-tagged YAML tree produced by the parser."""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    from .models import Span


@dataclasses.dataclass(frozen=True)
class ScalarNode:
    """Leaf value kept as its source text.

    ``style`` is ``None`` for plain scalars, otherwise the quote or block
    indicator. ``unquoted_template`` marks a bare ``{{ ... }}`` value that YAML
    would read as a nested flow mapping; its ``value`` is the raw source text.
    """

    span: Span
    value: str
    style: str | None = None
    unquoted_template: bool = False

    @property
    def is_quoted(self) -> bool:
        """Return True for single- or double-quoted scalars."""
        return self.style in {"'", '"'}


@dataclasses.dataclass(frozen=True)
class SequenceNode:
    """Ordered list of child nodes."""

    span: Span
    items: tuple[Node, ...] = ()
    flow: bool = False


@dataclasses.dataclass(frozen=True)
class MappingNode:
    """Ordered key/value pairs; duplicate keys are kept as written."""

    span: Span
    pairs: tuple[tuple[Node, Node], ...] = ()
    flow: bool = False

    def keys(self) -> list[str]:
        """Return the scalar keys in source order."""
        return [key.value for key, _ in self.pairs if isinstance(key, ScalarNode)]

    def key_nodes(self) -> list[ScalarNode]:
        """Return the scalar key nodes in source order."""
        return [key for key, _ in self.pairs if isinstance(key, ScalarNode)]

    def get(self, name: str) -> Node | None:
        """Return the value for the first key equal to ``name``."""
        for key, value in self.pairs:
            if isinstance(key, ScalarNode) and key.value == name:
                return value
        return None

    def __contains__(self, name: object) -> bool:
        """Return True when a scalar key equals ``name``."""
        return any(
            isinstance(key, ScalarNode) and key.value == name for key, _ in self.pairs
        )


Node = ScalarNode | SequenceNode | MappingNode


@dataclasses.dataclass(frozen=True)
class Document:
    """Parsed file: one root node per YAML document in the stream."""

    file: str
    roots: tuple[Node, ...] = ()

    @property
    def root(self) -> Node | None:
        """Return the first document's root, or None for an empty file."""
        return self.roots[0] if self.roots else None

    def walk(self) -> typ.Iterator[Node]:
        """Yield every node of every document, depth first."""
        for root in self.roots:
            yield from walk(root)


def walk(node: Node) -> typ.Iterator[Node]:
    """Yield ``node`` and its descendants in source order."""
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, MappingNode):
            children = [child for pair in current.pairs for child in pair]
        elif isinstance(current, SequenceNode):
            children = list(current.items)
        else:
            continue
        stack.extend(reversed(children))


def scalar_text(node: Node | None) -> str | None:
    """Return the value of a scalar node, or None for anything else."""
    if isinstance(node, ScalarNode):
        return node.value
    return None
