"""Utility modules for server bootstrap."""

from server_bootstrap.utils.command import CommandExecutor
from server_bootstrap.utils.file import FileManager
from server_bootstrap.utils.validation import Validator

__all__ = ["CommandExecutor", "FileManager", "Validator"]
