import csv
import io

import pytest

from exporter.app.encoders.delimited import DelimitedTextEncoder
from exporter.app.schemas.document import ExportOptions
from exporter.tests.fixtures.documents import make_document


def test_simple_document_bytes_are_exact():
    output = DelimitedTextEncoder().encode(make_document())

    assert output == b"Name,Age\nAnn,30\nBen,41\n"


def test_output_has_no_byte_order_mark():
    output = DelimitedTextEncoder().encode(make_document(rows=[["Zoë", "7"]]))

    assert not output.startswith(b"\xef\xbb\xbf")
    assert "Zoë".encode("utf-8") in output


def test_fields_are_quoted_only_when_needed():
    document = make_document(
        headers=["Name", "Note"],
        rows=[
            ["Smith, Ann", 'says "hi"'],
            ["multi\nline", "plain"],
        ],
    )

    output = DelimitedTextEncoder().encode(document)

    assert output == (
        b'Name,Note\n'
        b'"Smith, Ann","says ""hi"""\n'
        b'"multi\nline",plain\n'
    )


def test_custom_delimiter():
    document = make_document(
        rows=[["Ann;Lee", "30"]],
        options=ExportOptions(delimiter=";"),
    )

    output = DelimitedTextEncoder().encode(document)

    assert output == b'Name;Age\n"Ann;Lee";30\n'


def test_header_row_can_be_excluded():
    document = make_document(options=ExportOptions(include_header_row=False))

    output = DelimitedTextEncoder().encode(document)

    assert output == b"Ann,30\nBen,41\n"


def test_crlf_line_terminator():
    output = DelimitedTextEncoder(line_terminator="\r\n").encode(make_document())

    assert output == b"Name,Age\r\nAnn,30\r\nBen,41\r\n"


def test_rejects_unknown_line_terminator():
    with pytest.raises(ValueError):
        DelimitedTextEncoder(line_terminator="\r")


def test_parses_back_to_original_grid():
    document = make_document(
        headers=["A", "B", "C"],
        rows=[
            ['x,"y"', "", " padded "],
            ["line1\r\nline2", "=1+1", "€"],
        ],
    )

    output = DelimitedTextEncoder().encode(document)
    parsed = list(csv.reader(io.StringIO(output.decode("utf-8"), newline="")))

    assert parsed == [list(document.headers)] + [list(r) for r in document.rows]


def test_encoding_is_deterministic():
    encoder = DelimitedTextEncoder()
    document = make_document()

    assert encoder.encode(document) == encoder.encode(document)


@pytest.mark.parametrize(
    "line_terminator, expected",
    [
        ("\n", b'A,B\n"x\ry",z\n'),
        ("\r\n", b'A,B\r\n"x\ry",z\r\n'),
    ],
)
def test_bare_carriage_return_is_quoted(line_terminator, expected):
    document = make_document(headers=["A", "B"], rows=[["x\ry", "z"]])

    output = DelimitedTextEncoder(line_terminator=line_terminator).encode(document)

    assert output == expected
    parsed = list(csv.reader(io.StringIO(output.decode("utf-8"), newline="")))
    assert parsed == [["A", "B"], ["x\ry", "z"]]


def test_bare_line_feed_is_quoted_under_crlf():
    document = make_document(headers=["A", "B"], rows=[["x\ny", "z"]])

    output = DelimitedTextEncoder(line_terminator="\r\n").encode(document)

    assert output == b'A,B\r\n"x\ny",z\r\n'
