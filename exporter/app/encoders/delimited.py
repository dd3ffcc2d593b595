"""
Delimited-text (CSV) encoder.

Serializes the header row (unless excluded) followed by every data row,
one record per line. Quoting is minimal: a field is wrapped in double
quotes only if it contains the delimiter, a quote, or a line break (CR or
LF, whatever the configured terminator), and embedded quotes are doubled.
Output is UTF-8 without a byte order mark.

Memory use is bounded by the validated document itself.
"""

from __future__ import annotations

import csv
import io

from exporter.app.errors import EncodeError
from exporter.app.schemas.document import ExportFormat, TabularDocument

DEFAULT_DELIMITER = ","

# The csv module only quotes line breaks that occur in its lineterminator, so
# records are always written with CRLF and re-terminated on the way out.
_WRITER_TERMINATOR = "\r\n"


class _RecordSink:
    """Write target that swaps the CRLF record end for the configured one."""

    def __init__(self, buffer: io.StringIO, line_terminator: str) -> None:
        self._buffer = buffer
        self._line_terminator = line_terminator

    def write(self, record: str) -> int:
        if record.endswith(_WRITER_TERMINATOR):
            record = record[: -len(_WRITER_TERMINATOR)] + self._line_terminator
        return self._buffer.write(record)


class DelimitedTextEncoder:
    format = ExportFormat.CSV

    def __init__(self, line_terminator: str = "\n") -> None:
        if line_terminator not in {"\n", "\r\n"}:
            raise ValueError(
                f"Unsupported line terminator {line_terminator!r}"
            )
        self._line_terminator = line_terminator

    def encode(self, document: TabularDocument) -> bytes:
        delimiter = document.options.delimiter or DEFAULT_DELIMITER
        buffer = io.StringIO(newline="")

        try:
            writer = csv.writer(
                _RecordSink(buffer, self._line_terminator),
                delimiter=delimiter,
                quotechar='"',
                doublequote=True,
                quoting=csv.QUOTE_MINIMAL,
                lineterminator=_WRITER_TERMINATOR,
            )

            if document.options.writes_header_row:
                writer.writerow(document.headers)

            writer.writerows(document.rows)
        except csv.Error as exc:
            raise EncodeError(self.format.value, str(exc)) from exc

        return buffer.getvalue().encode("utf-8")
