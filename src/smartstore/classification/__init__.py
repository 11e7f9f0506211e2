"""File classification helpers."""

from .catalog import (
    CATEGORY_FOLDER_NAMES,
    EXTENSION_CATEGORIES,
    Category,
    category_folder_name,
    classify,
    format_size,
    get_extension,
)

__all__ = [
    "CATEGORY_FOLDER_NAMES",
    "EXTENSION_CATEGORIES",
    "Category",
    "category_folder_name",
    "classify",
    "format_size",
    "get_extension",
]
