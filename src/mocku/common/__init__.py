"""
Mocku Common Utilities

Shared utilities and helpers used across Mocku modules.
"""

from .utils import safe_json_parse, is_rule_file, RuleFileLoader, RULE_FILE_SUFFIXES

__all__ = [
    'safe_json_parse',
    'is_rule_file',
    'RuleFileLoader',
    'RULE_FILE_SUFFIXES',
]
