"""Utility modules."""

from .file_handlers import FileHandler, FileType, detect_file_type, file_kind_for

__all__ = ["FileHandler", "FileType", "detect_file_type", "file_kind_for"]
