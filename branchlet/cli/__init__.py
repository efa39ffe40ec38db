"""CLI module for branchlet."""

from .main import main
from .args import parse_args

__all__ = ["main", "parse_args"]
