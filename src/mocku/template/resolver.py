"""
Mocku Expression Resolver

Resolves `request.<source>.<field>` references against a RequestContext.
A miss is reported with the NOT_FOUND marker, never an exception, so an
unresolved template degrades to visible text instead of failing the
response.
"""

from typing import Any, Mapping

from .context import RequestContext
from .values import NOT_FOUND

SOURCES = ('path', 'headers', 'query', 'body')


class ExpressionResolver:
    """
    Look up template references in a request context.

    Example:
        resolver = ExpressionResolver()
        value = resolver.resolve(context, 'body', 'user.profile.theme')
        if value is NOT_FOUND:
            ...
    """

    def resolve(self, context: RequestContext, source: str, field_path: str) -> Any:
        """
        Resolve one reference.

        Args:
            context: Request context
            source: One of path, headers, query, body (any case)
            field_path: Key, or dotted path for body

        Returns:
            The resolved value, or NOT_FOUND
        """
        source = source.lower()
        if source == 'path':
            return self._lookup(context.path, field_path)
        if source == 'query':
            return self._lookup(context.query, field_path)
        if source == 'headers':
            return self._lookup(context.headers, field_path.lower())
        if source == 'body':
            return self.resolve_body(context.body, field_path)
        return NOT_FOUND

    def resolve_path_param(self, context: RequestContext, name: str) -> Any:
        """Resolve a legacy bare `{{name}}` reference (path parameters only)."""
        return self._lookup(context.path, name)

    def resolve_body(self, body: Any, field_path: str) -> Any:
        """
        Walk a dotted field path through nested objects.

        A top-level key equal to the whole path wins over traversal. Arrays
        are not indexable; stepping into anything but an object misses.
        """
        if not isinstance(body, dict):
            return NOT_FOUND

        if field_path in body:
            return body[field_path]

        current = body
        for part in field_path.split('.'):
            if not isinstance(current, dict) or part not in current:
                return NOT_FOUND
            current = current[part]
        return current

    @staticmethod
    def _lookup(values: Mapping[str, Any], key: str) -> Any:
        if key in values:
            return values[key]
        return NOT_FOUND
