"""
Object key derivation for attachments.

Upload, single delete and bulk delete all go through `attachment_object_key`,
so the key a blob is written under is always the key it is deleted by.
"""

from pathlib import PurePosixPath, PureWindowsPath
from typing import Tuple


def split_filename(filename: str) -> Tuple[str, str]:
    """
    Split an uploaded filename into (base name, extension without the dot).

    Directory components sent by the client are dropped, and so are
    backslash-separated ones.

        "report.pdf"         → ("report", "pdf")
        "archive.tar.gz"     → ("archive.tar", "gz")
        "README"             → ("README", "")
        "C:\\docs\\a.txt"    → ("a", "txt")
    """
    name = PurePosixPath(PureWindowsPath(filename).name).name
    path = PurePosixPath(name)
    extension = path.suffix[1:] if path.suffix else ""
    base = path.name[: -len(path.suffix)] if path.suffix else path.name
    return base, extension


def join_filename(file_name: str, extension: str) -> str:
    return f"{file_name}.{extension}" if extension else file_name


def attachment_object_key(note_id: int, file_name: str, extension: str) -> str:
    """Key of the blob backing an attachment: "<note_id>-<file_name>[.<extension>]"."""
    return f"{note_id}-{join_filename(file_name, extension)}"
