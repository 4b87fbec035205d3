"""
Mocku Mock Server Module

Mock HTTP server functionality for serving templated responses.

This module provides:
- FastAPI-based mock server with admin API
- Path pattern compilation and parameter extraction
- Rule loading, validation and reload
- Response rendering and request logging
"""

from .server import MockServer, MockConfig, MockMetrics, create_mock_server
from .path_matcher import CompiledPath, PathMatch, PatternError, Precedence, compile_path, rank_key
from .rules import MockRule, RuleError, RuleMatch, RuleSet, RuleStore
from .responder import RenderedResponse, Responder
from .request_log import RequestLog, RequestLogEntry

__all__ = [
    # Server
    'MockServer',
    'MockConfig',
    'MockMetrics',
    'create_mock_server',

    # Path matching
    'CompiledPath',
    'PathMatch',
    'PatternError',
    'Precedence',
    'compile_path',
    'rank_key',

    # Rules
    'MockRule',
    'RuleError',
    'RuleMatch',
    'RuleSet',
    'RuleStore',

    # Rendering
    'RenderedResponse',
    'Responder',

    # Request log
    'RequestLog',
    'RequestLogEntry',
]
