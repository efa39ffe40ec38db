"""Configuration handling for branchlet"""

import json
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List

from branchlet.constants import (
    DEFAULT_COPY_IGNORES,
    DEFAULT_COPY_PATTERNS,
    DEFAULT_WORKTREE_PATH_TEMPLATE,
)

# JSON key for each Config field
JSON_KEYS = {
    "worktree_copy_patterns": "worktreeCopyPatterns",
    "worktree_copy_ignores": "worktreeCopyIgnores",
    "worktree_path_template": "worktreePathTemplate",
    "post_create_cmd": "postCreateCmd",
    "terminal_command": "terminalCommand",
    "delete_branch_with_worktree": "deleteBranchWithWorktree",
    "branch_prefix": "branchPrefix",
    "default_source_branch": "defaultSourceBranch",
}
FIELD_NAMES = {json_key: name for name, json_key in JSON_KEYS.items()}


@dataclass(frozen=True)
class Config:
    """Configuration for branchlet with validation.

    Instances are never modified; use ``with_changes`` to derive a new one.
    """

    # File sync
    worktree_copy_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_COPY_PATTERNS))
    worktree_copy_ignores: List[str] = field(default_factory=lambda: list(DEFAULT_COPY_IGNORES))

    # Worktree placement
    worktree_path_template: str = DEFAULT_WORKTREE_PATH_TEMPLATE

    # Commands
    post_create_cmd: List[str] = field(default_factory=list)
    terminal_command: str = ""

    # Branch handling
    delete_branch_with_worktree: bool = False
    branch_prefix: str = ""
    default_source_branch: str = ""

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_string_list("worktree_copy_patterns")
        self._validate_string_list("worktree_copy_ignores")
        self._validate_string_list("post_create_cmd")
        self._validate_string("worktree_path_template")
        self._validate_string("terminal_command")
        self._validate_string("branch_prefix")
        self._validate_string("default_source_branch")
        self._validate_bool("delete_branch_with_worktree")
        self._validate_path_template()

    def _validate_string_list(self, name: str):
        """Validate a field is a list of strings."""
        value = getattr(self, name)
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"{JSON_KEYS[name]} must be a list of strings, got {value!r}")

    def _validate_string(self, name: str):
        """Validate a field is a string."""
        value = getattr(self, name)
        if not isinstance(value, str):
            raise ValueError(f"{JSON_KEYS[name]} must be a string, got {value!r}")

    def _validate_bool(self, name: str):
        """Validate a field is a boolean."""
        value = getattr(self, name)
        if not isinstance(value, bool):
            raise ValueError(f"{JSON_KEYS[name]} must be a boolean, got {value!r}")

    def _validate_path_template(self):
        """Validate worktree_path_template is not blank."""
        if not self.worktree_path_template.strip():
            raise ValueError("worktreePathTemplate cannot be empty")

    def with_changes(self, **changes: Any) -> "Config":
        """Return a new validated Config with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to its JSON representation (camelCase keys)."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[JSON_KEYS[f.name]] = list(value) if isinstance(value, list) else value
        return result

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from a JSON object, ignoring unknown keys."""
        return cls().overlay(config_dict)

    def overlay(self, config_dict: dict) -> "Config":
        """Return a new Config where each known key present in ``config_dict`` overrides this one.

        Raises:
            ValueError: If the mapping is not an object or a present field has the wrong type
        """
        if not isinstance(config_dict, dict):
            raise ValueError(f"Configuration must be a JSON object, got {type(config_dict).__name__}")

        # Extract only known fields
        filtered = {
            FIELD_NAMES[key]: value for key, value in config_dict.items() if key in FIELD_NAMES
        }
        return replace(self, **filtered)


def field_name_for(key: str) -> str:
    """Map a JSON key (``branchPrefix``) or field name (``branch_prefix``) to the field name.

    Raises:
        ValueError: If the key names no configuration field
    """
    if key in FIELD_NAMES:
        return FIELD_NAMES[key]
    if key in JSON_KEYS:
        return key
    raise ValueError(f"Unknown configuration field '{key}'. Known fields: {', '.join(FIELD_NAMES)}")


def parse_field_value(name: str, raw: str) -> Any:
    """Turn a command-line string into a value for the field ``name``.

    String fields take the text as is. Other fields are parsed as JSON, and a
    bare word given for a list field becomes a one-item list.
    """
    default = getattr(Config(), name)
    if isinstance(default, str):
        return raw
    try:
        value = json.loads(raw)
    except ValueError:
        value = raw
    if isinstance(default, list) and isinstance(value, str):
        return [value]
    return value
