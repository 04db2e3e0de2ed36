"""multipart/form-data decoding for the /api/og endpoint.

Drives python-multipart's streaming ``MultipartParser`` with callbacks and
collects text fields and uploaded files into a ``FormData``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from keyboard_og.config import MAX_BODY_SIZE
from keyboard_og.errors import InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """A file part of a multipart body, held fully in memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class FormData:
    """Decoded form: text fields and file parts keyed by field name."""

    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, UploadedFile] = field(default_factory=dict)

    def get(self, name: str) -> str | None:
        return self.fields.get(name)

    def get_file(self, name: str) -> UploadedFile | None:
        return self.files.get(name)


class _PartCollector:
    """Callback target for MultipartParser; one instance per body."""

    def __init__(self) -> None:
        self.form = FormData()
        self.in_part = False
        self.ended = False
        self.part_count = 0
        self._header_field = b""
        self._header_value = b""
        self._headers: dict[bytes, bytes] = {}
        self._data: list[bytes] = []

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_end": self.on_end,
        }

    def on_part_begin(self) -> None:
        self.in_part = True
        self._headers = {}
        self._data = []

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._data.append(data[start:end])

    def on_end(self) -> None:
        self.ended = True

    def on_part_end(self) -> None:
        self.in_part = False
        self.part_count += 1

        _, options = parse_options_header(self._headers.get(b"content-disposition"))
        raw_name = options.get(b"name")
        if raw_name is None:
            msg = "Multipart part is missing a field name"
            raise InputError(msg)
        name = raw_name.decode("utf-8", errors="replace")
        payload = b"".join(self._data)

        raw_filename = options.get(b"filename")
        if raw_filename is not None:
            content_type = self._headers.get(b"content-type", b"").decode("latin-1").strip()
            upload = UploadedFile(
                filename=raw_filename.decode("utf-8", errors="replace"),
                content_type=content_type,
                data=payload,
            )
            self.form.files.setdefault(name, upload)
            return

        try:
            value = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"Field '{name}' is not valid UTF-8"
            raise InputError(msg) from e
        self.form.fields.setdefault(name, value)


def boundary_from_content_type(content_type: str | None) -> bytes:
    """Return the multipart boundary, or raise InputError."""
    if not content_type:
        msg = "Missing Content-Type header, expected multipart/form-data"
        raise InputError(msg)

    mime, params = parse_options_header(content_type)
    if mime != b"multipart/form-data":
        msg = f"Unsupported Content-Type '{mime.decode('latin-1')}', expected multipart/form-data"
        raise InputError(msg)

    boundary = params.get(b"boundary")
    if not boundary:
        msg = "multipart/form-data body has no boundary"
        raise InputError(msg)
    return boundary


def parse_multipart(
    body: bytes, content_type: str | None, max_size: int = MAX_BODY_SIZE
) -> FormData:
    """Decode a complete multipart/form-data body.

    Raises InputError for a wrong content type, an oversize body, or a body
    that is truncated or otherwise malformed.
    """
    if len(body) > max_size:
        msg = f"Request body too large ({len(body)} bytes, limit {max_size})"
        raise InputError(msg)

    boundary = boundary_from_content_type(content_type)
    collector = _PartCollector()
    parser = MultipartParser(boundary, collector.callbacks())
    try:
        parser.write(body)
        parser.finalize()
    except MultipartParseError as e:
        msg = f"Malformed multipart body: {e}"
        raise InputError(msg) from e

    if collector.in_part or not collector.ended:
        msg = "Malformed multipart body: unexpected end of data"
        raise InputError(msg)

    logger.debug(
        "Parsed form: fields=%s files=%s",
        sorted(collector.form.fields),
        sorted(collector.form.files),
    )
    return collector.form
