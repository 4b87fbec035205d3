"""
Mocku Template Engine

Renders mock response bodies and headers from request data.

Supported expressions:
- {{request.<path|headers|query|body>.<field>}}     bare reference
- {{<fn>(request.<source>.<field>)}}                 converted reference
- {{<fn>(name)}}                                     converted path parameter
- {{name}}                                           legacy path parameter

where <fn> is one of toBool, toNumber, toInt, toFloat, toString, toArray,
toObject. Templates are scanned once into a list of nodes; substituted
values are never scanned again.

Unresolved expressions are left in the output verbatim so a broken mock is
visible in the response rather than failing it.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from .context import RequestContext
from .converter import TypeConverter
from .resolver import ExpressionResolver
from .values import NOT_FOUND, dumps, loads_json, to_text

logger = logging.getLogger("mocku.template")

_FUNCTION_RE = re.compile(r'^([A-Za-z]+)\(([^()]+)\)$')
_REFERENCE_RE = re.compile(r'^request\.(path|headers|query|body)\.(.+)$', re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class TextNode:
    """Literal text between expressions."""

    text: str


@dataclass(frozen=True)
class ReferenceNode:
    """{{request.source.field}}"""

    source: str
    field: str
    raw: str


@dataclass(frozen=True)
class LegacyNode:
    """{{name}} - a path parameter by name."""

    name: str
    raw: str


@dataclass(frozen=True)
class FunctionNode:
    """{{fn(argument)}} - a converted reference or path parameter."""

    function: str
    argument: Union[ReferenceNode, LegacyNode]
    raw: str


ExpressionNode = Union[ReferenceNode, LegacyNode, FunctionNode]
Node = Union[TextNode, ReferenceNode, LegacyNode, FunctionNode]


def parse_expression(content: str, raw: str) -> Optional[ExpressionNode]:
    """
    Parse the inside of one {{...}} span.

    Args:
        content: Text between the braces
        raw: The full span including braces

    Returns:
        Expression node, or None if the span is not a template expression
    """
    function_match = _FUNCTION_RE.match(content)
    if function_match:
        name, argument = function_match.groups()
        if not TypeConverter.is_function(name):
            return None
        reference_match = _REFERENCE_RE.match(argument)
        if reference_match:
            source, field = reference_match.groups()
            return FunctionNode(name, ReferenceNode(source.lower(), field, argument), raw)
        if argument.lower().startswith('request.'):
            return None
        return FunctionNode(name, LegacyNode(argument, argument), raw)

    reference_match = _REFERENCE_RE.match(content)
    if reference_match:
        source, field = reference_match.groups()
        return ReferenceNode(source.lower(), field, raw)

    if content.lower().startswith('request.') or '(' in content or ')' in content:
        return None
    return LegacyNode(content, raw)


def tokenize(text: str) -> List[Node]:
    """
    Split a template into text and expression nodes in a single pass.

    An expression is `{{`, a non-empty body free of braces, then `}}`.
    Spans that look like expressions but are not valid ones stay text.
    """
    nodes: List[Node] = []
    literal_start = 0
    position = 0

    while True:
        start = text.find('{{', position)
        if start == -1:
            break
        close = text.find('}', start + 2)
        if close == -1:
            break

        content = text[start + 2:close]
        if not content or '{' in content or not text.startswith('}}', close):
            position = start + 1
            continue

        end = close + 2
        node = parse_expression(content, text[start:end])
        position = end
        if node is None:
            continue

        if start > literal_start:
            nodes.append(TextNode(text[literal_start:start]))
        nodes.append(node)
        literal_start = end

    if literal_start < len(text):
        nodes.append(TextNode(text[literal_start:]))
    return nodes


class TemplateEngine:
    """
    Render string and JSON templates against a request context.

    Example:
        engine = TemplateEngine()
        context = RequestContext.build('GET', '/users/7', {'id': '7'})

        engine.process_template('User {{request.path.id}}', context)
        # 'User 7'

        engine.process_json_template('{"id": "{{toNumber(request.path.id)}}"}', context)
        # '{\\n  "id": 7\\n}'
    """

    def __init__(
        self,
        resolver: Optional[ExpressionResolver] = None,
        converter: Optional[TypeConverter] = None,
        indent: Optional[int] = 2
    ):
        """
        Initialize template engine.

        Args:
            resolver: ExpressionResolver instance (will create if None)
            converter: TypeConverter instance (will create if None)
            indent: JSON indent for process_json_template (None = compact)
        """
        self.resolver = resolver or ExpressionResolver()
        self.converter = converter or TypeConverter()
        self.indent = indent

    def evaluate(self, node: ExpressionNode, context: RequestContext) -> Any:
        """
        Evaluate one expression node.

        Returns:
            Resolved (and converted) value, or NOT_FOUND
        """
        if isinstance(node, ReferenceNode):
            return self.resolver.resolve(context, node.source, node.field)
        if isinstance(node, LegacyNode):
            return self.resolver.resolve_path_param(context, node.name)

        value = self.evaluate(node.argument, context)
        if value is NOT_FOUND:
            return NOT_FOUND
        try:
            return self.converter.convert(node.function, value)
        except TypeError as e:
            logger.warning(f"Could not apply {node.function} in {node.raw}: {e}")
            return NOT_FOUND

    def process_template(self, text: str, context: RequestContext) -> str:
        """
        Substitute every expression in a string.

        Args:
            text: Template text
            context: Request context

        Returns:
            Rendered text; unresolved expressions are kept verbatim
        """
        if not text:
            return text

        parts = []
        for node in tokenize(text):
            if isinstance(node, TextNode):
                parts.append(node.text)
                continue

            value = self.evaluate(node, context)
            if value is NOT_FOUND:
                logger.debug(f"Unresolved template expression {node.raw}")
                parts.append(node.raw)
            else:
                parts.append(to_text(value))
        return ''.join(parts)

    def render_value(self, document: Any, context: RequestContext) -> Any:
        """
        Render a parsed JSON document.

        A string that is exactly one reference or function expression is
        replaced by the typed value; other strings get text substitution.
        Object key order and array order are preserved.

        Types are never guessed from text: `"{{request.query.page}}"` stays
        the string "2", use `"{{toNumber(request.query.page)}}"` for 2.
        """
        if isinstance(document, dict):
            return {key: self.render_value(value, context) for key, value in document.items()}
        if isinstance(document, list):
            return [self.render_value(item, context) for item in document]
        if isinstance(document, str):
            return self._render_string(document, context)
        return document

    def _render_string(self, text: str, context: RequestContext) -> Any:
        nodes = tokenize(text)
        if len(nodes) == 1 and isinstance(nodes[0], (ReferenceNode, FunctionNode)):
            value = self.evaluate(nodes[0], context)
            if value is not NOT_FOUND:
                return value
        return self.process_template(text, context)

    def process_json_template(self, json_text: str, context: RequestContext) -> str:
        """
        Render a JSON template with typed substitution.

        Falls back to plain string substitution when json_text is not
        valid JSON.

        Raises:
            TemplateRenderError: If the rendered document cannot be
                serialized back to JSON
        """
        if not json_text:
            return json_text

        try:
            document = loads_json(json_text)
        except ValueError:
            logger.debug("Template is not valid JSON, using string substitution")
            return self.process_template(json_text, context)

        return dumps(self.render_value(document, context), indent=self.indent)

    def process_headers(self, headers: Mapping[str, str], context: RequestContext) -> Dict[str, str]:
        """Render every header value, keeping header order."""
        return {
            name: self.process_template(str(value), context)
            for name, value in headers.items()
        }
