"""Extension catalog used to classify files into semantic categories."""

from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    """Semantic file categories understood by the organizer."""

    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    CODE = "code"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"
    PDF = "pdf"
    OTHER = "other"


_EXTENSIONS: dict[Category, tuple[str, ...]] = {
    Category.DOCUMENT: ("doc", "docx", "txt", "rtf", "odt", "md", "tex"),
    Category.PDF: ("pdf",),
    Category.SPREADSHEET: ("xls", "xlsx", "csv", "ods", "numbers"),
    Category.PRESENTATION: ("ppt", "pptx", "odp", "key"),
    Category.IMAGE: (
        "jpg",
        "jpeg",
        "png",
        "gif",
        "bmp",
        "webp",
        "svg",
        "ico",
        "tiff",
        "tif",
        "heic",
        "heif",
        "raw",
        "cr2",
        "nef",
    ),
    Category.VIDEO: (
        "mp4",
        "avi",
        "mov",
        "wmv",
        "mkv",
        "flv",
        "webm",
        "m4v",
        "mpeg",
        "mpg",
        "3gp",
    ),
    Category.AUDIO: ("mp3", "wav", "flac", "aac", "ogg", "wma", "m4a", "opus", "aiff"),
    Category.ARCHIVE: ("zip", "rar", "7z", "tar", "gz", "bz2", "xz", "iso", "dmg"),
    Category.CODE: (
        "js",
        "ts",
        "jsx",
        "tsx",
        "py",
        "java",
        "c",
        "cpp",
        "h",
        "hpp",
        "cs",
        "go",
        "rs",
        "rb",
        "php",
        "swift",
        "kt",
        "scala",
        "html",
        "css",
        "scss",
        "sass",
        "less",
        "json",
        "xml",
        "yaml",
        "yml",
        "toml",
        "sql",
        "sh",
        "bash",
        "ps1",
        "r",
        "lua",
        "perl",
        "pl",
    ),
}

EXTENSION_CATEGORIES: dict[str, Category] = {
    extension: category
    for category, extensions in _EXTENSIONS.items()
    for extension in extensions
}

CATEGORY_FOLDER_NAMES: dict[Category, str] = {
    Category.DOCUMENT: "Documents",
    Category.PDF: "PDFs",
    Category.SPREADSHEET: "Spreadsheets",
    Category.PRESENTATION: "Presentations",
    Category.IMAGE: "Images",
    Category.VIDEO: "Videos",
    Category.AUDIO: "Audio",
    Category.ARCHIVE: "Archives",
    Category.CODE: "Code",
    Category.OTHER: "Other Files",
}

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def get_extension(filename: str) -> str:
    """Return the text after the last dot of ``filename``.

    Dotfiles without a further extension (``.bashrc``) and names without a dot
    yield an empty string. Case is preserved.

    Args:
        filename: File name to inspect.

    Returns:
        str: Extension without the leading dot.
    """

    last_dot = filename.rfind(".")
    if last_dot <= 0:
        return ""
    return filename[last_dot + 1 :]


def classify(filename: str) -> Category:
    """Map a file name to its semantic category.

    Args:
        filename: File name (not a path) to classify.

    Returns:
        Category: Matching category, or ``Category.OTHER`` when unknown.
    """

    return EXTENSION_CATEGORIES.get(get_extension(filename).lower(), Category.OTHER)


def category_folder_name(category: Category | str) -> str:
    """Return the plural folder label used when organizing by type."""

    return CATEGORY_FOLDER_NAMES[Category(category)]


def format_size(size_bytes: int) -> str:
    """Render a byte count using binary units (``1.5 MB``)."""

    if size_bytes <= 0:
        return "0 B"
    exponent = 0
    while size_bytes >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size_bytes / (1024**exponent), 1)
    rendered = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{rendered} {_SIZE_UNITS[exponent]}"
