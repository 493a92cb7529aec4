from __future__ import annotations

import io
import os
import zipfile
from typing import Iterable, Optional, Tuple
from urllib.parse import urlsplit

import py7zr
import rarfile
from rarfile import Error as RarError, RarCannotExec

from .errors import NoSubtitleEntry

SUBTITLE_EXTENSIONS = (".srt", ".ass", ".ssa", ".sub")
ARCHIVE_EXTENSIONS = (".zip", ".rar", ".7z")
ZIP_MAGIC = b"PK\x03\x04"


def is_subtitle(name: str) -> bool:
    return name.lower().endswith(SUBTITLE_EXTENSIONS)


def _first_subtitle(names: Iterable[str]) -> Optional[str]:
    for name in names:
        if is_subtitle(name):
            return name
    return None


def container_kind(url: str, filename: str = "", head: bytes = b"") -> Optional[str]:
    """Return ``.zip``/``.rar``/``.7z`` when the payload is an archive, else None.

    The URL path decides first (query string ignored); a download filename or
    the ZIP signature covers endpoints like ``/download?container=zip``.
    """
    for candidate in (urlsplit(url).path, filename):
        ext = os.path.splitext(candidate or "")[1].lower()
        if ext in ARCHIVE_EXTENSIONS:
            return ext
    if head.startswith(ZIP_MAGIC):
        return ".zip"
    return None


def extract_first_subtitle(data: bytes, kind: str) -> Tuple[str, bytes]:
    """Return the first subtitle entry of an archive, in archive listing order."""
    if kind == ".zip":
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = [info.filename for info in archive.infolist() if not info.is_dir()]
                target = _first_subtitle(names)
                if target is None:
                    raise NoSubtitleEntry("ZIP archive does not contain subtitle files")
                return os.path.basename(target), archive.read(target)
        except zipfile.BadZipFile as exc:
            raise NoSubtitleEntry(f"ZIP archive could not be read: {exc}") from exc

    if kind == ".rar":
        try:
            with rarfile.RarFile(io.BytesIO(data)) as archive:
                names = [info.filename for info in archive.infolist() if not info.isdir()]
                target = _first_subtitle(names)
                if target is None:
                    raise NoSubtitleEntry("RAR archive does not contain subtitle files")
                return os.path.basename(target), archive.read(target)
        except (RarError, RarCannotExec) as exc:
            raise NoSubtitleEntry(
                "RAR archive extraction failed. Install 'unrar', 'unar', or 'bsdtar' on the host."
            ) from exc

    if kind == ".7z":
        try:
            with py7zr.SevenZipFile(io.BytesIO(data)) as archive:
                names = [info.filename for info in archive.list() if not info.is_directory]
                target = _first_subtitle(names)
                if target is None:
                    raise NoSubtitleEntry("7z archive does not contain subtitle files")
                extracted = archive.read([target])
                return os.path.basename(target), extracted[target].read()
        except py7zr.Bad7zFile as exc:
            raise NoSubtitleEntry(f"7z archive could not be read: {exc}") from exc

    raise NoSubtitleEntry(f"Unsupported subtitle container: {kind}")
