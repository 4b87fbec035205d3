"""
Mocku Common Utilities

Shared helpers for reading mock rule files.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

RULE_FILE_SUFFIXES = ('.json', '.yaml', '.yml')


def safe_json_parse(json_string: str, default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(rendered.body, default={})
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError):
        return default


def is_rule_file(path: Path) -> bool:
    """Check whether a path looks like a mock rule file."""
    return path.is_file() and path.suffix.lower() in RULE_FILE_SUFFIXES


class RuleFileLoader:
    """
    Loader for mock rule files.

    Handles the rule file layouts Mocku accepts, in JSON or YAML:
    - Format 1: {"path": ..., "method": ...}   (one rule per file)
    - Format 2: {"mocks": [...]}               (wrapped list)
    - Format 3: [...]                          (direct list)

    Example:
        loader = RuleFileLoader("mocks/get-user.json")
        for rule_data in loader.load():
            print(rule_data['path'])
    """

    def __init__(self, file_path: str):
        """
        Initialize rule file loader.

        Args:
            file_path: Path to a .json, .yaml or .yml rule file
        """
        self.file_path = Path(file_path)

    def read(self) -> Any:
        """
        Parse the file content.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the content is not valid JSON/YAML
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Rule file not found: {self.file_path}")

        with open(self.file_path, 'r', encoding='utf-8') as f:
            if self.file_path.suffix.lower() in ('.yaml', '.yml'):
                try:
                    return yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ValueError(f"Invalid YAML in {self.file_path}: {e}") from e
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {self.file_path}: {e}") from e

    def load(self) -> List[Dict[str, Any]]:
        """
        Load rule dictionaries from the file.

        Returns:
            List of rule dictionaries, in file order

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the format is invalid or unrecognized
        """
        data = self.read()

        if isinstance(data, dict):
            # Format 2: {"mocks": [...]}
            if 'mocks' in data and isinstance(data['mocks'], list):
                rules = data['mocks']
            # Format 1: a single rule
            else:
                rules = [data]
        elif isinstance(data, list):
            # Format 3: [...]
            rules = data
        else:
            raise ValueError(
                f"Unexpected rule format in {self.file_path}. "
                f"Expected a rule object, a list of rules or {{'mocks': [...]}}, "
                f"got {type(data).__name__}"
            )

        for index, rule in enumerate(rules):
            if not isinstance(rule, dict):
                raise ValueError(
                    f"Rule #{index} in {self.file_path} is a {type(rule).__name__}, expected an object"
                )
        return rules
