"""
Tests for Mocku Responder.

Tests body and header rendering, content types and delay bounds.
"""

import json
import logging

import pytest

from mocku.mock.responder import Responder
from mocku.mock.rules import MockRule, RuleSet
from mocku.template import TemplateEngine, TemplateRenderError


def render(rule_data, method='GET', path='/', **request):
    """Match a single rule and render it."""
    rule = MockRule.from_dict(rule_data)
    match = RuleSet(rules=(rule,)).find_match(method, path)
    assert match is not None

    responder = Responder(engine=TemplateEngine(indent=None))
    context = responder.build_context(match, method, path, **request)
    return responder.render(match.rule, context)


class TestRenderBody:
    """Test body rendering."""

    def test_structured_body_typed(self):
        """Test structured bodies get typed substitution."""
        response = render(
            {'path': '/api/users/{id}', 'responseBody': {
                'id': '{{toNumber(request.path.id)}}',
                'active': '{{toBool(request.query.active)}}'
            }},
            path='/api/users/77',
            raw_query='active=yes'
        )

        assert json.loads(response.body) == {'id': 77, 'active': True}
        assert response.status_code == 200

    def test_string_body(self):
        """Test string bodies get text substitution."""
        response = render(
            {'path': '/hello/{name}', 'contentType': 'text/plain', 'responseBody': 'Hello {{name}}!'},
            path='/hello/Ann'
        )

        assert response.body == 'Hello Ann!'
        assert response.content_type == 'text/plain'

    def test_string_body_with_json_text_not_typed(self):
        """Test JSON held in a string body is substituted as text."""
        response = render(
            {'path': '/n/{id}', 'responseBody': '{"id": "{{request.path.id}}"}'},
            path='/n/5'
        )

        assert response.body == '{"id": "5"}'

    def test_no_body(self):
        response = render({'path': '/empty', 'statusCode': 204})

        assert response.body == ''
        assert response.status_code == 204

    def test_body_from_request_body(self):
        """Test nested request body fields."""
        response = render(
            {'path': '/orders', 'method': 'POST', 'responseBody': {
                'customer': '{{request.body.customer.name}}',
                'total': '{{toFloat(request.body.total)}}'
            }},
            method='POST',
            path='/orders',
            raw_body=b'{"customer": {"name": "Ann"}, "total": "19.99"}'
        )

        assert json.loads(response.body) == {'customer': 'Ann', 'total': 19.99}

    def test_unserializable_body_raises(self):
        with pytest.raises(TemplateRenderError):
            render(
                {'path': '/x', 'method': 'POST', 'responseBody': {'n': '{{request.body.n}}'}},
                method='POST',
                path='/x',
                raw_body='{"n": 1e999}'
            )


class TestRenderHeaders:
    """Test header rendering."""

    def test_headers_templated(self):
        response = render(
            {'path': '/users/{id}', 'responseHeaders': {
                'X-User-Id': '{{request.path.id}}',
                'X-Trace': '{{request.headers.x-trace}}'
            }},
            path='/users/3',
            raw_headers=[('X-Trace', 't-1')]
        )

        assert response.headers == {'X-User-Id': '3', 'X-Trace': 't-1'}


class TestContentType:
    """Test content type selection."""

    def test_default_json(self):
        assert render({'path': '/a'}).content_type == 'application/json'

    def test_from_header(self):
        response = render({'path': '/a', 'responseHeaders': {'content-type': 'text/csv'}})

        assert response.content_type == 'text/csv'

    def test_declared_wins(self):
        response = render({
            'path': '/a',
            'contentType': 'application/xml',
            'responseHeaders': {'Content-Type': 'text/csv'}
        })

        assert response.content_type == 'application/xml'

    def test_invalid_json_warns(self, caplog):
        """Test a non-JSON body under a JSON content type is logged."""
        with caplog.at_level(logging.WARNING, logger='mocku.responder'):
            response = render({'path': '/a', 'responseBody': 'not json'})

        assert response.body == 'not json'
        assert 'not valid JSON' in caplog.text


class TestDelay:
    """Test artificial latency bounds."""

    def test_delay_seconds(self):
        rule = MockRule.from_dict({'path': '/a', 'delayMs': 250})

        assert Responder().delay_seconds(rule) == 0.25

    def test_delay_bounded(self):
        rule = MockRule.from_dict({'path': '/a', 'delayMs': 5000})

        assert Responder(max_delay_ms=1000).delay_seconds(rule) == 1.0

    def test_no_delay(self):
        rule = MockRule.from_dict({'path': '/a'})

        assert Responder(max_delay_ms=1000).delay_seconds(rule) == 0
