"""
Mocku Request Context

Normalized, read-only view of one inbound request as seen by templates:
path parameters, lower-cased headers, query parameters and the parsed
JSON body.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl

from .values import loads_json

RAW_BODY_KEY = '_raw'

HeaderInput = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]
QueryInput = Union[str, Mapping[str, Any], None]
BodyInput = Union[bytes, str, None]


def _join_values(value: Any, separator: str) -> str:
    if isinstance(value, (list, tuple)):
        return separator.join(str(v) for v in value)
    return '' if value is None else str(value)


def normalize_headers(raw_headers: Optional[HeaderInput]) -> Dict[str, str]:
    """
    Lower-case header names.

    Case variants of the same name collapse into one entry; the last one
    written wins.
    """
    headers: Dict[str, str] = {}
    if not raw_headers:
        return headers

    items = raw_headers.items() if isinstance(raw_headers, Mapping) else raw_headers
    for name, value in items:
        headers[str(name).lower()] = _join_values(value, ', ')
    return headers


def parse_query(raw_query: QueryInput) -> Dict[str, str]:
    """
    Parse a query string (or mapping) into single string values.

    Repeated keys are joined with a comma and blank values are kept.
    """
    if not raw_query:
        return {}

    if isinstance(raw_query, Mapping):
        return {str(k): _join_values(v, ',') for k, v in raw_query.items()}

    grouped: Dict[str, list] = {}
    for key, value in parse_qsl(raw_query.lstrip('?'), keep_blank_values=True):
        grouped.setdefault(key, []).append(value)
    return {key: ','.join(values) for key, values in grouped.items()}


def parse_body(raw_body: BodyInput) -> Tuple[Any, str]:
    """
    Parse a raw request body.

    Returns:
        Tuple of (body tree, decoded text). An empty body gives an empty
        object; text that is not JSON gives {"_raw": text}.
    """
    if raw_body is None:
        return {}, ''

    text = raw_body.decode('utf-8', errors='replace') if isinstance(raw_body, bytes) else str(raw_body)
    if not text.strip():
        return {}, text

    try:
        return loads_json(text), text
    except ValueError:
        return {RAW_BODY_KEY: text}, text


@dataclass(frozen=True)
class RequestContext:
    """Immutable per-request snapshot consumed by the template engine."""

    path: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    body: Any = field(default_factory=dict)
    method: str = ''
    request_path: str = ''
    raw_body: str = ''

    @classmethod
    def build(
        cls,
        method: str = '',
        path: str = '',
        path_params: Optional[Mapping[str, str]] = None,
        raw_headers: Optional[HeaderInput] = None,
        raw_query: QueryInput = None,
        raw_body: BodyInput = None
    ) -> 'RequestContext':
        """
        Build a context from raw request parts.

        Args:
            method: HTTP method
            path: Request path (without query string)
            path_params: Parameters extracted by a prior path match
            raw_headers: Header mapping or (name, value) pairs
            raw_query: Raw query string or mapping
            raw_body: Raw body bytes or text

        Returns:
            RequestContext
        """
        body, text = parse_body(raw_body)
        return cls(
            path=MappingProxyType(dict(path_params or {})),
            headers=MappingProxyType(normalize_headers(raw_headers)),
            query=MappingProxyType(parse_query(raw_query)),
            body=body,
            method=(method or '').upper(),
            request_path=path or '',
            raw_body=text
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'method': self.method,
            'path': self.request_path,
            'path_params': dict(self.path),
            'headers': dict(self.headers),
            'query': dict(self.query),
            'body': self.body
        }
