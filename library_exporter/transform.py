"""
Mapping of library items to worksheet rows.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from .exceptions import TransformError
from .models import OutputRow, SourceRecord, TransformResult, UserIdentity

BYTES_PER_MB = 1024 * 1024


def transform_record(record: SourceRecord) -> TransformResult:
    """
    Transform one library item into an output row

    Never raises; a malformed record yields a result carrying a TransformError.

    Args:
        record: Deserialized library item

    Returns:
        TransformResult: Row on success, error on failure
    """
    file_name = record.name or None
    try:
        if not file_name:
            raise ValueError("missing file name")

        row = OutputRow(
            file_name=file_name,
            file_size_mb=size_in_mb(record.size),
            file_extension=file_extension(file_name),
            file_path=_required(record.path, "file path"),
            created_by_email=_email(record.author, "author"),
            created_date=parse_timestamp(record.created, "created date"),
            modified_by_email=_email(record.editor, "editor"),
            modified_date=parse_timestamp(record.modified, "modified date"),
        )
        return TransformResult(row=row)

    except Exception as e:
        return TransformResult(error=TransformError(file_name, str(e)))


def size_in_mb(size: Any) -> float:
    """
    Convert a size in bytes to megabytes rounded to 2 decimal places

    Rounding is Python's round(), i.e. round-half-to-even on the binary value.
    """
    if size is None or isinstance(size, bool):
        raise ValueError(f"invalid file size: {size!r}")
    size_bytes = int(size)
    if size_bytes < 0:
        raise ValueError(f"negative file size: {size_bytes}")
    return round(size_bytes / BYTES_PER_MB, 2)


def file_extension(file_name: str) -> str:
    """
    Return the last dot-delimited suffix including the dot, or '' if there is none

    Examples: 'a.tar.gz' -> '.gz', 'README' -> '', 'archive.' -> ''
    """
    index = file_name.rfind('.')
    if index == -1 or index == len(file_name) - 1:
        return ''
    return file_name[index:]


def parse_timestamp(value: Any, label: str = "timestamp") -> datetime:
    """
    Parse an ISO-8601 timestamp into a naive UTC datetime

    Worksheet cells cannot hold timezone-aware values, so offsets are
    normalized to UTC and dropped.
    """
    if value is None or value == '':
        raise ValueError(f"missing {label}")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"invalid {label}: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _required(value: Optional[str], label: str) -> str:
    if not value:
        raise ValueError(f"missing {label}")
    return value


def _email(identity: Optional[UserIdentity], role: str) -> Optional[str]:
    # An absent identity is an error; an identity without an email is not
    if identity is None:
        raise AttributeError(f"{role} identity is null")
    return identity.email
