"""
Mocku Rule Store

Mock rule definitions and the store that loads them from a directory.

A RuleStore publishes immutable RuleSet snapshots. Requests read one
snapshot for their whole lifetime; reload() and register() build a new
snapshot and swap it in, so a reload never tears a rule mid-request.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..common import RuleFileLoader, is_rule_file
from .path_matcher import CompiledPath, PatternError, compile_path, rank_key

logger = logging.getLogger("mocku.rules")

DEFAULT_METHOD = 'GET'
DEFAULT_STATUS = 200


class RuleError(ValueError):
    """Raised for a mock rule definition that cannot be used."""


def _lower_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k).lower(): v for k, v in data.items()}


@dataclass(frozen=True)
class MockRule:
    """A mock rule: method + path pattern mapped to a templated response."""

    path_spec: str
    method: str
    status_code: int
    content_type: Optional[str]
    delay_ms: int
    response_headers: Mapping[str, str]
    response_body: Any
    compiled: CompiledPath = field(repr=False, compare=False)
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Optional[str] = None) -> 'MockRule':
        """
        Create a MockRule from its JSON definition.

        Keys are matched case-insensitively (path, method, statusCode,
        contentType, delayMs, responseHeaders, responseBody).

        Raises:
            RuleError: If the path is missing, malformed, or a field has
                the wrong type
        """
        fields = _lower_keys(data)

        path_spec = fields.get('path')
        if not isinstance(path_spec, str) or not path_spec.strip():
            raise RuleError(f"Mock rule{_where(source)} is missing 'path'")

        try:
            compiled = compile_path(path_spec.strip())
        except PatternError as e:
            raise RuleError(f"Mock rule{_where(source)} has an invalid path: {e}") from e

        method = fields.get('method') or DEFAULT_METHOD
        if not isinstance(method, str):
            raise RuleError(f"Mock rule{_where(source)} has a non-string method")

        headers = fields.get('responseheaders') or {}
        if not isinstance(headers, Mapping):
            raise RuleError(f"Mock rule{_where(source)} has non-object responseHeaders")

        content_type = fields.get('contenttype')
        if content_type is not None and not isinstance(content_type, str):
            raise RuleError(f"Mock rule{_where(source)} has a non-string contentType")

        return cls(
            path_spec=path_spec.strip(),
            method=method.strip().upper(),
            status_code=_int_field(fields, 'statuscode', DEFAULT_STATUS, source),
            content_type=content_type or None,
            delay_ms=max(_int_field(fields, 'delayms', 0, source), 0),
            response_headers=MappingProxyType({str(k): str(v) for k, v in headers.items()}),
            response_body=fields.get('responsebody'),
            compiled=compiled,
            source=source
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the JSON definition layout."""
        return {
            'path': self.path_spec,
            'method': self.method,
            'statusCode': self.status_code,
            'contentType': self.content_type,
            'delayMs': self.delay_ms,
            'responseHeaders': dict(self.response_headers),
            'responseBody': self.response_body
        }

    def summary(self) -> Dict[str, Any]:
        """Short description for listings."""
        return {
            'method': self.method,
            'path': self.path_spec,
            'status': self.status_code,
            'kind': self.compiled.precedence.name.lower(),
            'source': self.source
        }


def _where(source: Optional[str]) -> str:
    return f" in {source}" if source else ""


def _int_field(fields: Dict[str, Any], key: str, default: int, source: Optional[str]) -> int:
    value = fields.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise RuleError(f"Mock rule{_where(source)} has a boolean {key}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise RuleError(f"Mock rule{_where(source)} has a non-integer {key}: {value!r}") from e


@dataclass(frozen=True)
class InvalidRule:
    """A rule definition that was rejected while loading."""

    source: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source, 'error': self.error}


@dataclass(frozen=True)
class RuleMatch:
    """A matched rule with its extracted path parameters."""

    rule: MockRule
    params: Dict[str, str]


@dataclass(frozen=True)
class RuleSet:
    """Immutable point-in-time collection of rules, in registration order."""

    rules: Tuple[MockRule, ...] = ()
    invalid: Tuple[InvalidRule, ...] = ()

    def __len__(self) -> int:
        return len(self.rules)

    def for_method(self, method: str) -> List[MockRule]:
        """Rules registered for a method, ranked by match precedence."""
        method_upper = method.upper()
        ranked = [
            (rank_key(rule.compiled, position), rule)
            for position, rule in enumerate(self.rules)
            if rule.method == method_upper
        ]
        ranked.sort(key=lambda item: item[0])
        return [rule for _, rule in ranked]

    def find_match(self, method: str, path: str) -> Optional[RuleMatch]:
        """
        Find the best rule for a request.

        Args:
            method: HTTP method (any case)
            path: Request path

        Returns:
            RuleMatch, or None if no rule matches
        """
        for rule in self.for_method(method):
            result = rule.compiled.match(path)
            if result.matched:
                return RuleMatch(rule=rule, params=result.params)
        return None

    def with_rule(self, rule: MockRule) -> 'RuleSet':
        """Return a new RuleSet with rule appended."""
        return RuleSet(rules=self.rules + (rule,), invalid=self.invalid)


class RuleStore:
    """
    Directory-backed store of mock rules.

    Loads *.json, *.yaml and *.yml files in file-name order. Each file
    holds one rule, a list of rules, or {"mocks": [...]}. Invalid rules are
    logged and reported through RuleSet.invalid; they never stop the other
    rules from loading.

    Example:
        store = RuleStore('mocks')
        snapshot = store.snapshot()
        match = snapshot.find_match('GET', '/api/users/7')
    """

    def __init__(self, directory: Optional[str] = None, load: bool = True):
        """
        Initialize rule store.

        Args:
            directory: Rules directory (None for an in-memory store)
            load: Load the directory immediately

        Raises:
            FileNotFoundError: If directory is given but doesn't exist
        """
        self.directory = Path(directory) if directory else None
        self._lock = threading.Lock()
        self._snapshot = RuleSet()
        self._runtime_rules: Tuple[MockRule, ...] = ()

        if self.directory is not None and not self.directory.is_dir():
            raise FileNotFoundError(f"Rules directory not found: {self.directory}")

        if load and self.directory is not None:
            self.reload()

    def snapshot(self) -> RuleSet:
        """Current rule set; callers keep it for the whole request."""
        return self._snapshot

    def reload(self) -> RuleSet:
        """
        Reload all rule files and publish a new snapshot.

        Rules added with register() are kept, after the file rules.

        Returns:
            The new RuleSet
        """
        if self.directory is None:
            return self._snapshot

        rules, invalid = self._load_directory(self.directory)
        with self._lock:
            snapshot = RuleSet(rules=tuple(rules) + self._runtime_rules, invalid=tuple(invalid))
            self._snapshot = snapshot

        logger.info(f"Loaded {len(rules)} mock rules from {self.directory} ({len(invalid)} invalid)")
        return snapshot

    def register(self, data: Mapping[str, Any], source: Optional[str] = None) -> MockRule:
        """
        Add a rule at runtime.

        Raises:
            RuleError: If the definition is invalid
        """
        rule = MockRule.from_dict(data, source=source or 'runtime')
        with self._lock:
            self._runtime_rules += (rule,)
            self._snapshot = self._snapshot.with_rule(rule)
        logger.info(f"Registered mock rule {rule.method} {rule.path_spec}")
        return rule

    def _load_directory(self, directory: Path) -> Tuple[List[MockRule], List[InvalidRule]]:
        rules: List[MockRule] = []
        invalid: List[InvalidRule] = []

        for file_path in sorted(p for p in directory.iterdir() if is_rule_file(p)):
            try:
                definitions = RuleFileLoader(str(file_path)).load()
            except (OSError, ValueError) as e:
                logger.error(f"Error loading mock file {file_path.name}: {e}")
                invalid.append(InvalidRule(source=file_path.name, error=str(e)))
                continue

            for index, definition in enumerate(definitions):
                source = file_path.name if len(definitions) == 1 else f"{file_path.name}#{index}"
                try:
                    rule = MockRule.from_dict(definition, source=source)
                except RuleError as e:
                    logger.warning(f"Skipping invalid mock rule: {e}")
                    invalid.append(InvalidRule(source=source, error=str(e)))
                    continue

                kind = 'wildcard' if rule.compiled.has_parameters else 'exact'
                logger.debug(f"Loaded {kind} mock rule from {source}: {rule.method} {rule.path_spec}")
                rules.append(rule)

        return rules, invalid
