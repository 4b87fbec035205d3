"""
Mocku Template Module

Request-driven template rendering for mock responses.

This module provides:
- RequestContext built from raw request parts
- Expression resolution against path, headers, query and JSON body
- Typed conversion functions (toBool, toNumber, ...)
- String and JSON template rendering with typed substitution
"""

from .context import RequestContext
from .resolver import ExpressionResolver
from .converter import TypeConverter
from .engine import TemplateEngine, tokenize
from .values import NOT_FOUND, TemplateRenderError, ValueKind, kind_of

__all__ = [
    'RequestContext',
    'ExpressionResolver',
    'TypeConverter',
    'TemplateEngine',
    'tokenize',
    'NOT_FOUND',
    'TemplateRenderError',
    'ValueKind',
    'kind_of',
]
