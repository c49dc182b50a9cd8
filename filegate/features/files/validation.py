"""
Upload admission pipeline.

An upload is persisted only after passing every gate:
1. Directory: exactly "inbound" or "outbound"
2. Size: non-empty and within the configured maximum
3. Name: sanitizable (see sanitizer)
4. Extension: on the allow-list
5. Content signature: leading bytes match the extension's magic bytes

Cheap gates run first; the signature gate is the only one that reads
the stream, and it always rewinds it.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import BinaryIO, Mapping

import structlog

from filegate.config import Settings
from filegate.core.exceptions import AdmissionError
from filegate.core.metrics import admission_rejections_total
from filegate.features.files.sanitizer import (
    file_extension,
    is_valid_directory,
    sanitize_filename,
)

logger = structlog.get_logger(__name__)

SIGNATURE_PROBE_BYTES = 8
MIN_SIGNATURE_BYTES = 4

DEFAULT_ALLOWED_EXTENSIONS = frozenset({".pdf", ".xlsx", ".xls", ".csv", ".txt"})

# Extensions missing from this table (csv, txt) pass the signature gate:
# plain-text formats have nothing to verify. Adding an extension to the
# allow-list does not add a signature for it.
DEFAULT_MAGIC_BYTES: Mapping[str, tuple[bytes, ...]] = MappingProxyType({
    ".pdf": (b"\x25\x50\x44\x46",),   # %PDF
    ".xlsx": (b"\x50\x4B\x03\x04",),  # PK (ZIP archive)
    ".xls": (b"\xD0\xCF\x11\xE0",),   # OLE2 compound document
})


@dataclass(frozen=True)
class FileValidationOptions:
    """Immutable admission configuration."""

    max_size_bytes: int = 52_428_800  # 50MB
    allowed_extensions: frozenset[str] = DEFAULT_ALLOWED_EXTENSIONS
    magic_bytes: Mapping[str, tuple[bytes, ...]] = field(default_factory=lambda: DEFAULT_MAGIC_BYTES)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileValidationOptions":
        return cls(
            max_size_bytes=settings.max_upload_size,
            allowed_extensions=frozenset(ext.lower() for ext in settings.allowed_extensions),
        )

    @property
    def max_size_mb(self) -> int:
        return self.max_size_bytes // 1_048_576


def has_allowed_extension(file_name: str, options: FileValidationOptions) -> bool:
    """Case-insensitive allow-list check on the text after the last dot."""
    return file_extension(file_name) in options.allowed_extensions


def matches_signature(
    content: BinaryIO,
    file_name: str,
    options: FileValidationOptions,
) -> bool:
    """
    Check the stream's leading bytes against the extension's signatures.

    Extensions without a registered signature pass. Otherwise at least
    4 bytes must be readable and one signature must be a byte-exact prefix.
    The stream position is restored whatever the outcome.
    """
    signatures = options.magic_bytes.get(file_extension(file_name))
    if not signatures:
        return True

    original_position = content.tell()
    try:
        head = content.read(SIGNATURE_PROBE_BYTES)
    finally:
        content.seek(original_position)

    if len(head) < MIN_SIGNATURE_BYTES:
        return False

    return any(head.startswith(signature) for signature in signatures)


class AdmissionValidator:
    """
    Runs the admission gates with a fixed configuration.

    Usage:
        validator = AdmissionValidator(FileValidationOptions.from_settings(settings))
        clean_name = validator.admit(directory, upload.filename, size, upload.file)
    """

    def __init__(self, options: FileValidationOptions):
        self.options = options

    def check_directory(self, directory: str | None) -> str:
        if not is_valid_directory(directory):
            self._reject("INVALID_DIRECTORY", "dir must be 'inbound' or 'outbound'.")
        return directory

    def check_size(self, size_bytes: int | None) -> None:
        if not size_bytes:
            self._reject("EMPTY_FILE", "No file provided.")
        if size_bytes > self.options.max_size_bytes:
            self._reject(
                "FILE_TOO_LARGE",
                f"File exceeds {self.options.max_size_mb}MB limit.",
                max_size_bytes=self.options.max_size_bytes,
            )

    def check_file_name(self, raw_name: str | None) -> str:
        sanitized = sanitize_filename(raw_name)
        if sanitized is None:
            self._reject("INVALID_FILENAME", "Invalid file name.")
        return sanitized

    def check_extension(self, file_name: str) -> None:
        if not has_allowed_extension(file_name, self.options):
            self._reject("INVALID_FILE_TYPE", "File type not allowed.")

    def check_content(self, content: BinaryIO, file_name: str) -> None:
        if not matches_signature(content, file_name, self.options):
            self._reject("CONTENT_MISMATCH", "File content does not match the declared file type.")

    def admit(
        self,
        directory: str | None,
        raw_name: str | None,
        size_bytes: int | None,
        content: BinaryIO,
    ) -> str:
        """
        Run every gate and return the sanitized file name.

        Raises:
            AdmissionError: first failing gate, with its stable code
        """
        self.check_directory(directory)
        self.check_size(size_bytes)
        file_name = self.check_file_name(raw_name)
        self.check_extension(file_name)
        self.check_content(content, file_name)
        return file_name

    def _reject(self, code: str, message: str, **details) -> None:
        admission_rejections_total.labels(code=code).inc()
        logger.info("upload_rejected", code=code, **details)
        raise AdmissionError(message, code=code, details=details)
