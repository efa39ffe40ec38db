"""Utility functions for branchlet.

This package provides utility modules:
- logging: Logging configuration and logger creation
- validation: Naming rules for directories, branches and prefixes
"""

from .logging import setup_logging, get_logger
from .validation import (
    apply_branch_prefix,
    directory_name_for_branch,
    normalize_prefix,
    validate_branch_name,
    validate_directory_name,
    validate_prefix,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Validation
    "apply_branch_prefix",
    "directory_name_for_branch",
    "normalize_prefix",
    "validate_branch_name",
    "validate_directory_name",
    "validate_prefix",
]
