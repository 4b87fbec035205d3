"""
Mocku Path Matcher

Compiles mock path specs such as `/users/{id}` or `/files/{*path}` and
extracts named parameters from concrete request paths.

Features:
- Named parameters: {id} matches exactly one non-empty segment
- Catch-all parameters: {*rest} matches the remainder of the path
- Case-insensitive literal segments
- URL-decoded parameter values
- Precedence ranking (literal > named > catch-all, then registration order)
"""

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Tuple
from urllib.parse import unquote

_PLACEHOLDER_RE = re.compile(r'^\{(\*?)([^{}/*]+)\}$')


class PatternError(ValueError):
    """Raised for a structurally malformed path spec."""


class SegmentKind(IntEnum):
    """Kinds of compiled path segments."""

    LITERAL = 0
    NAMED = 1
    CATCH_ALL = 2


class Precedence(IntEnum):
    """Match precedence of a compiled path; lower wins."""

    LITERAL = 0
    NAMED = 1
    CATCH_ALL = 2


@dataclass(frozen=True)
class Segment:
    """One compiled segment: literal text (lower-cased) or a parameter name."""

    kind: SegmentKind
    value: str


@dataclass(frozen=True)
class PathMatch:
    """Result of matching a request path."""

    matched: bool
    params: Dict[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.matched


NO_MATCH = PathMatch(matched=False)


def _check_braces(path_spec: str, segment: str):
    depth = 0
    for char in segment:
        if char == '{':
            depth += 1
            if depth > 1:
                raise PatternError(f"Nested braces in path spec {path_spec!r}")
        elif char == '}':
            depth -= 1
            if depth < 0:
                raise PatternError(f"Unbalanced '}}' in path spec {path_spec!r}")
    if depth:
        raise PatternError(f"Unbalanced '{{' in path spec {path_spec!r}")


def _compile_segment(path_spec: str, segment: str) -> Segment:
    if '{' not in segment and '}' not in segment:
        return Segment(SegmentKind.LITERAL, unquote(segment).lower())

    _check_braces(path_spec, segment)
    match = _PLACEHOLDER_RE.match(segment)
    if match:
        star, name = match.groups()
        name = name.strip()
        if not name:
            raise PatternError(f"Empty parameter name in path spec {path_spec!r}")
        return Segment(SegmentKind.CATCH_ALL if star else SegmentKind.NAMED, name)

    if segment in ('{}', '{*}'):
        raise PatternError(f"Empty parameter name in path spec {path_spec!r}")

    # Balanced braces that are not a whole-segment placeholder, e.g. "v{1}.json"
    return Segment(SegmentKind.LITERAL, unquote(segment).lower())


@dataclass(frozen=True)
class CompiledPath:
    """
    A compiled path spec.

    Example:
        compiled = compile_path('/users/{id}')
        result = compiled.match('/users/123')
        if result.matched:
            print(result.params['id'])   # '123'
    """

    pattern: str
    segments: Tuple[Segment, ...]

    @property
    def parameter_names(self) -> List[str]:
        """Parameter names in declaration order."""
        return [s.value for s in self.segments if s.kind is not SegmentKind.LITERAL]

    @property
    def has_parameters(self) -> bool:
        return any(s.kind is not SegmentKind.LITERAL for s in self.segments)

    @property
    def has_catch_all(self) -> bool:
        return bool(self.segments) and self.segments[-1].kind is SegmentKind.CATCH_ALL

    @property
    def precedence(self) -> Precedence:
        """Specificity class used to rank competing rules."""
        if self.has_catch_all:
            return Precedence.CATCH_ALL
        if self.has_parameters:
            return Precedence.NAMED
        return Precedence.LITERAL

    def match(self, request_path: str) -> PathMatch:
        """
        Match a concrete request path.

        The whole path must match. Segment counts must be equal unless the
        pattern ends in a catch-all.

        Args:
            request_path: Request path; any query string is ignored

        Returns:
            PathMatch with extracted (URL-decoded) parameters
        """
        parts = request_path.split('?', 1)[0].split('/')
        segments = self.segments

        if self.has_catch_all:
            if len(parts) < len(segments):
                return NO_MATCH
        elif len(parts) != len(segments):
            return NO_MATCH

        params: Dict[str, str] = {}
        for index, segment in enumerate(segments):
            if segment.kind is SegmentKind.CATCH_ALL:
                params[segment.value] = unquote('/'.join(parts[index:]))
                break

            part = parts[index]
            if segment.kind is SegmentKind.LITERAL:
                if unquote(part).lower() != segment.value:
                    return NO_MATCH
            elif not part:
                return NO_MATCH
            else:
                params[segment.value] = unquote(part)

        return PathMatch(matched=True, params=params)


def compile_path(path_spec: str) -> CompiledPath:
    """
    Compile a path spec.

    Args:
        path_spec: Path such as /users/{id}/posts/{postId} or /files/{*path}

    Returns:
        CompiledPath

    Raises:
        PatternError: On unbalanced or nested braces, empty or duplicate
            parameter names, or a catch-all that is not the last segment
    """
    if not isinstance(path_spec, str) or not path_spec:
        raise PatternError("Path spec must be a non-empty string")

    normalized = path_spec if path_spec.startswith('/') else '/' + path_spec
    segments = tuple(_compile_segment(path_spec, s) for s in normalized.split('/'))

    seen = set()
    for index, segment in enumerate(segments):
        if segment.kind is SegmentKind.LITERAL:
            continue
        if segment.value in seen:
            raise PatternError(f"Duplicate parameter {segment.value!r} in path spec {path_spec!r}")
        seen.add(segment.value)
        if segment.kind is SegmentKind.CATCH_ALL and index != len(segments) - 1:
            raise PatternError(f"Catch-all {{*{segment.value}}} must be the last segment in {path_spec!r}")

    return CompiledPath(pattern=path_spec, segments=segments)


def rank_key(compiled: CompiledPath, position: int) -> Tuple[int, int]:
    """
    Sort key for competing rules of the same method.

    Exact literal paths come before parameterized ones, named parameters
    before catch-alls; ties go to the rule registered first.
    """
    return (int(compiled.precedence), position)
