"""
File I/O helpers.

- Single place for encoding
- Use Path.read_text()/write_text() consistently
"""

from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING, MODULE_FILE_EXTENSION


def read_source_file(path: Union[Path, str]) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=DEFAULT_FILE_ENCODING)


def write_source_file(path: Union[Path, str], text: str) -> None:
    p = Path(path) if not isinstance(path, Path) else path
    p.write_text(text, encoding=DEFAULT_FILE_ENCODING)


def is_elm_file(path: Union[Path, str]) -> bool:
    return str(path).endswith(MODULE_FILE_EXTENSION)
