# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Uploaded file handle.

The worker process receives multipart uploads already decoded by the
application server: for each field it gets the temporary content, the size,
an error code and the client-supplied name and media type. ``UploadedFile``
carries that metadata unchanged into the framework request, where the
normalizer also merges it into the parsed body under its field name.

Error codes follow the usual upload status values::

    UPLOAD_ERR_OK          0   upload succeeded
    UPLOAD_ERR_INI_SIZE    1   exceeds server limit
    UPLOAD_ERR_FORM_SIZE   2   exceeds form limit
    UPLOAD_ERR_PARTIAL     3   partially uploaded
    UPLOAD_ERR_NO_FILE     4   no file sent
    UPLOAD_ERR_NO_TMP_DIR  6   missing temporary directory
    UPLOAD_ERR_CANT_WRITE  7   failed to write to disk
    UPLOAD_ERR_EXTENSION   8   stopped by an extension

Example::

    upload = UploadedFile(b"test contents", client_filename="test.txt")
    upload.size             # 13
    upload.read()           # b"test contents"
    upload.move_to("/srv/uploads/test.txt")
"""

from __future__ import annotations

import io
import shutil
from pathlib import Path
from typing import BinaryIO

__all__ = [
    "UploadedFile",
    "UPLOAD_ERR_OK",
    "UPLOAD_ERR_INI_SIZE",
    "UPLOAD_ERR_FORM_SIZE",
    "UPLOAD_ERR_PARTIAL",
    "UPLOAD_ERR_NO_FILE",
    "UPLOAD_ERR_NO_TMP_DIR",
    "UPLOAD_ERR_CANT_WRITE",
    "UPLOAD_ERR_EXTENSION",
]

UPLOAD_ERR_OK = 0
UPLOAD_ERR_INI_SIZE = 1
UPLOAD_ERR_FORM_SIZE = 2
UPLOAD_ERR_PARTIAL = 3
UPLOAD_ERR_NO_FILE = 4
UPLOAD_ERR_NO_TMP_DIR = 6
UPLOAD_ERR_CANT_WRITE = 7
UPLOAD_ERR_EXTENSION = 8


class UploadedFile:
    """Client upload with its transport metadata.

    Attributes:
        size: Size in bytes (computed from content when not given).
        error: Upload status code, ``UPLOAD_ERR_OK`` on success.
        client_filename: File name sent by the client (untrusted).
        client_media_type: Media type sent by the client (untrusted).
    """

    __slots__ = ("_stream", "size", "error", "client_filename", "client_media_type", "_moved")

    def __init__(
        self,
        stream: bytes | BinaryIO | str | Path,
        size: int | None = None,
        error: int = UPLOAD_ERR_OK,
        client_filename: str | None = None,
        client_media_type: str | None = None,
    ) -> None:
        if isinstance(stream, bytes):
            stream = io.BytesIO(stream)
        elif isinstance(stream, (str, Path)):
            stream = open(stream, "rb")
        self._stream: BinaryIO = stream
        if size is None:
            size = self._measure()
        self.size = size
        self.error = error
        self.client_filename = client_filename
        self.client_media_type = client_media_type
        self._moved = False

    def _measure(self) -> int | None:
        try:
            position = self._stream.tell()
            self._stream.seek(0, io.SEEK_END)
            end = self._stream.tell()
            self._stream.seek(position)
        except (OSError, ValueError):
            return None
        return end - position

    @property
    def is_ok(self) -> bool:
        return self.error == UPLOAD_ERR_OK

    @property
    def stream(self) -> BinaryIO:
        """Underlying binary stream.

        Raises:
            RuntimeError: If the upload failed or the file was moved.
        """
        self._check_available()
        return self._stream

    def read(self) -> bytes:
        """Return the whole content from the beginning of the stream."""
        stream = self.stream
        stream.seek(0)
        return stream.read()

    def move_to(self, target_path: str | Path) -> Path:
        """Copy the content to target_path and close the upload stream.

        Can be called only once.

        Raises:
            RuntimeError: If the upload failed or the file was moved already.
        """
        self._check_available()
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        self._stream.seek(0)
        with open(target, "wb") as fh:
            shutil.copyfileobj(self._stream, fh)
        self._stream.close()
        self._moved = True
        return target

    def _check_available(self) -> None:
        if not self.is_ok:
            raise RuntimeError(f"Cannot access upload {self.client_filename!r}: error {self.error}")
        if self._moved:
            raise RuntimeError(f"Upload {self.client_filename!r} has already been moved")

    def __repr__(self) -> str:
        return (
            f"UploadedFile(client_filename={self.client_filename!r}, "
            f"size={self.size}, error={self.error})"
        )
