import mimetypes
from pathlib import PurePath
from typing import Tuple

from .models import FileType

# Extension tables used to classify uploads, lower-case without the dot
DOCUMENT_EXTENSIONS = frozenset({
    "pdf", "doc", "docx", "txt", "xls", "xlsx", "csv", "rtf", "ods", "ppt",
    "odp", "md", "html", "htm", "epub", "pages", "fig", "psd", "ai", "indd",
    "xd", "sketch", "afdesign", "afphoto",
})
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "bmp", "svg", "webp"})
VIDEO_EXTENSIONS = frozenset({"mp4", "avi", "mov", "mkv", "webm"})
AUDIO_EXTENSIONS = frozenset({"mp3", "wav", "ogg", "flac"})


def get_file_type(file_name: str) -> Tuple[FileType, str]:
    """ Return the FileType and the lower-case extension for a file name. """
    extension = PurePath(file_name).suffix.lower().lstrip(".")

    if not extension:
        return FileType.OTHER, ""
    if extension in DOCUMENT_EXTENSIONS:
        return FileType.DOCUMENT, extension
    if extension in IMAGE_EXTENSIONS:
        return FileType.IMAGE, extension
    if extension in VIDEO_EXTENSIONS:
        return FileType.VIDEO, extension
    if extension in AUDIO_EXTENSIONS:
        return FileType.AUDIO, extension
    return FileType.OTHER, extension


def guess_mime(file_name: str) -> str:
    # Standard library MIME detection, based on the name only
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or "application/octet-stream"
