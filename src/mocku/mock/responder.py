"""
Mocku Responder

Turns a matched mock rule and an inbound request into a rendered response:
builds the RequestContext, renders headers and body through the template
engine and picks the content type.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..common import safe_json_parse
from ..template import RequestContext, TemplateEngine
from ..template.context import BodyInput, HeaderInput, QueryInput
from ..template.values import dumps
from .rules import MockRule, RuleMatch

logger = logging.getLogger("mocku.responder")

DEFAULT_CONTENT_TYPE = 'application/json'

_INVALID = object()


@dataclass
class RenderedResponse:
    """A response ready to be written to the client."""

    status_code: int
    body: str
    content_type: str
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'status': self.status_code,
            'content_type': self.content_type,
            'headers': dict(self.headers),
            'body': self.body
        }


class Responder:
    """
    Render mock responses.

    Example:
        responder = Responder()
        match = store.snapshot().find_match('GET', '/api/users/77')
        context = responder.build_context(match, 'GET', '/api/users/77', raw_query='active=yes')
        response = responder.render(match.rule, context)
        print(response.body)
    """

    def __init__(self, engine: Optional[TemplateEngine] = None, max_delay_ms: Optional[int] = None):
        """
        Initialize responder.

        Args:
            engine: TemplateEngine instance (will create if None)
            max_delay_ms: Upper bound for rule delays (None = unbounded)
        """
        self.engine = engine or TemplateEngine()
        self.max_delay_ms = max_delay_ms

    def build_context(
        self,
        match: RuleMatch,
        method: str,
        path: str,
        raw_headers: Optional[HeaderInput] = None,
        raw_query: QueryInput = None,
        raw_body: BodyInput = None
    ) -> RequestContext:
        """Build the template context for a matched request."""
        return RequestContext.build(
            method=method,
            path=path,
            path_params=match.params,
            raw_headers=raw_headers,
            raw_query=raw_query,
            raw_body=raw_body
        )

    def delay_seconds(self, rule: MockRule) -> float:
        """Artificial latency for a rule, bounded by max_delay_ms."""
        delay_ms = max(rule.delay_ms, 0)
        if self.max_delay_ms is not None:
            delay_ms = min(delay_ms, max(self.max_delay_ms, 0))
        return delay_ms / 1000

    def content_type_for(self, rule: MockRule) -> str:
        """Declared content type, else Content-Type header, else JSON."""
        if rule.content_type:
            return rule.content_type
        for name, value in rule.response_headers.items():
            if name.lower() == 'content-type' and value:
                return value
        return DEFAULT_CONTENT_TYPE

    def render_body(self, rule: MockRule, context: RequestContext) -> str:
        """
        Render the rule's response body.

        Structured bodies get typed JSON substitution; string bodies get
        text substitution.

        Raises:
            TemplateRenderError: If a structured body cannot be serialized
                after substitution
        """
        body = rule.response_body
        if body is None:
            return ''
        if isinstance(body, str):
            return self.engine.process_template(body, context)
        rendered = self.engine.render_value(body, context)
        return dumps(rendered, indent=self.engine.indent)

    def render(self, rule: MockRule, context: RequestContext) -> RenderedResponse:
        """
        Render status, headers and body for a matched rule.

        Raises:
            TemplateRenderError: If the rendered body is not serializable
        """
        content_type = self.content_type_for(rule)
        body = self.render_body(rule, context)
        headers = self.engine.process_headers(rule.response_headers, context)

        self._check_content_type(rule, content_type, body)

        return RenderedResponse(
            status_code=rule.status_code,
            body=body,
            content_type=content_type,
            headers=headers
        )

    def _check_content_type(self, rule: MockRule, content_type: str, body: str):
        if not body or 'json' not in content_type.lower():
            return
        if safe_json_parse(body, default=_INVALID) is _INVALID:
            logger.warning(
                f"Rendered body for {rule.method} {rule.path_spec} is not valid JSON "
                f"but content type is {content_type}"
            )
