"""Parse YAML role files into position-tagged node trees.

The parser stops at ruamel.yaml's composition stage: nodes keep their start
and end marks, values stay as the text written in the file and no tags are
resolved. Templating placeholders are therefore never evaluated; they survive
verbatim inside scalar values, which is what the text-oriented rules need.
"""

from __future__ import annotations

import io
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml import nodes as yaml_nodes
from ruamel.yaml.error import MarkedYAMLError, YAMLError

from .errors import ParseError
from .models import Span
from .nodes import Document, MappingNode, Node, ScalarNode, SequenceNode

if typ.TYPE_CHECKING:
    from .models import SourceFile

_UTF8_BOM = "\ufeff"
_TEMPLATE_OPEN = "{{"


def decode_source(source: SourceFile) -> str:
    """Decode the raw bytes of a file as UTF-8, raising ParseError otherwise."""
    try:
        text = source.content.decode("utf-8")
    except UnicodeDecodeError as error:
        prefix = source.content[: error.start]
        line = prefix.count(b"\n") + 1
        column = len(prefix) - (prefix.rfind(b"\n") + 1) + 1
        raise ParseError(
            source.relpath, line, column, "file is not valid UTF-8"
        ) from error
    return text.removeprefix(_UTF8_BOM)


def parse_document(text: str, file: str) -> Document:
    """Compose every YAML document in ``text`` into a Document.

    Raises:
        ParseError: when the text is not well-formed YAML.

    """
    yaml = YAML(typ="rt")
    try:
        composed = list(yaml.compose_all(io.StringIO(text)))
    except MarkedYAMLError as error:
        raise _marked_error(file, error) from error
    except YAMLError as error:
        raise ParseError(file, 1, 1, str(error).strip() or "invalid YAML") from error

    converter = _Converter(text, file)
    try:
        roots = tuple(converter.convert(node) for node in composed if node is not None)
    except RecursionError as error:
        raise ParseError(file, 1, 1, "document nesting is too deep") from error
    return Document(file=file, roots=roots)


def _marked_error(file: str, error: MarkedYAMLError) -> ParseError:
    mark = error.problem_mark or error.context_mark
    line = mark.line + 1 if mark is not None else 1
    column = mark.column + 1 if mark is not None else 1
    parts = [part for part in (error.context, error.problem) if part]
    message = "; ".join(str(part) for part in parts) or "invalid YAML"
    return ParseError(file, line, column, message)


class _Converter:
    """Translate ruamel nodes into frozen rolecheck nodes.

    Aliased nodes convert once and are shared; an alias that refers back into
    its own anchor is rejected.
    """

    def __init__(self, text: str, file: str) -> None:
        self._text = text
        self._file = file
        self._converted: dict[int, Node] = {}
        self._active: set[int] = set()

    def convert(self, node: yaml_nodes.Node) -> Node:
        key = id(node)
        if key in self._converted:
            return self._converted[key]
        if key in self._active:
            span = self._span(node)
            raise ParseError(self._file, span.line, span.column, "recursive alias")
        self._active.add(key)
        try:
            result = self._convert(node)
        finally:
            self._active.discard(key)
        self._converted[key] = result
        return result

    def _convert(self, node: yaml_nodes.Node) -> Node:
        span = self._span(node)
        if isinstance(node, yaml_nodes.MappingNode):
            if node.flow_style and self._starts_template(node):
                return ScalarNode(
                    span=span,
                    value=self._source_text(node),
                    unquoted_template=True,
                )
            pairs = tuple(
                (self.convert(key), self.convert(value)) for key, value in node.value
            )
            return MappingNode(span=span, pairs=pairs, flow=bool(node.flow_style))
        if isinstance(node, yaml_nodes.SequenceNode):
            items = tuple(self.convert(item) for item in node.value)
            return SequenceNode(span=span, items=items, flow=bool(node.flow_style))
        return ScalarNode(span=span, value=str(node.value), style=node.style or None)

    def _span(self, node: yaml_nodes.Node) -> Span:
        start = node.start_mark
        end = node.end_mark or start
        return Span(
            file=self._file,
            line=start.line + 1,
            column=start.column + 1,
            end_line=end.line + 1,
            end_column=end.column + 1,
        )

    def _starts_template(self, node: yaml_nodes.Node) -> bool:
        index = node.start_mark.index
        return self._text.startswith(_TEMPLATE_OPEN, index)

    def _source_text(self, node: yaml_nodes.Node) -> str:
        return self._text[node.start_mark.index : node.end_mark.index]
