"""
Font faces for the paginated-document encoder.

Two kinds of face exist:

    StandardFont    one of the PDF base-14 Type1 fonts (Helvetica), WinAnsi
                    encoded and not embedded. Covers cp1252 only.
    TrueTypeFont    a TrueType file embedded as a Type0 / CIDFontType2 font
                    with Identity-H encoding and a ToUnicode map. Covers
                    whatever the font's cmap covers (Thai, CJK, ...).

A face is loaded once and is read-only afterwards. Each encode call starts
a FontRun on it, which records the glyphs actually drawn and builds the
PDF font dictionary for that document only. Characters a face cannot draw
are counted on the run so the encoder can report them.
"""

from __future__ import annotations

import io
import re
import struct
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

import pikepdf
from fontTools.ttLib import TTFont
from pikepdf import Array, Dictionary, Name, Stream, String

from exporter.app.encoders.text_formatting import estimate_width

NOTDEF_GID = 0

_PDF_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.+-]")
_BFCHAR_BLOCK = 100


class FontRun(Protocol):
    missing: int

    def encode(self, text: str) -> bytes:
        ...

    def to_pdf(self, pdf: pikepdf.Pdf) -> pikepdf.Object:
        ...


class FontFace(Protocol):
    name: str

    def text_width(self, text: str, size: float) -> float:
        ...

    def start(self) -> FontRun:
        ...


# ---------------------------------------------------------------------------
# Base-14 Type1
# ---------------------------------------------------------------------------


class StandardFont:
    def __init__(self, base_font: str) -> None:
        self.name = base_font

    def text_width(self, text: str, size: float) -> float:
        return estimate_width(text, size)

    def start(self) -> "_StandardRun":
        return _StandardRun(self)


class _StandardRun:
    def __init__(self, face: StandardFont) -> None:
        self._face = face
        self.missing = 0

    def encode(self, text: str) -> bytes:
        out = bytearray()
        for char in text:
            try:
                out += char.encode("cp1252")
            except UnicodeEncodeError:
                self.missing += 1
                out += b"?"
        return bytes(out)

    def to_pdf(self, pdf: pikepdf.Pdf) -> pikepdf.Object:
        return pdf.make_indirect(
            Dictionary(
                Type=Name.Font,
                Subtype=Name.Type1,
                BaseFont=Name("/" + self._face.name),
                Encoding=Name.WinAnsiEncoding,
            )
        )


# ---------------------------------------------------------------------------
# Embedded TrueType
# ---------------------------------------------------------------------------


class TrueTypeFont:
    """
    TrueType face read with fontTools.

    Only the cmap, advance widths and a handful of metrics are kept; the
    TTFont object is closed after loading, so a face can be shared across
    threads.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data = self.path.read_bytes()

        font = TTFont(io.BytesIO(self._data))
        try:
            if "glyf" not in font:
                raise ValueError(
                    f"{self.path.name}: only TrueType outlines can be embedded"
                )

            units = font["head"].unitsPerEm
            scale = 1000.0 / units
            glyph_order = font.getGlyphOrder()
            gid_of = {name: gid for gid, name in enumerate(glyph_order)}
            hmtx = font["hmtx"]

            self._cmap: Dict[int, int] = {
                codepoint: gid_of[name]
                for codepoint, name in (font.getBestCmap() or {}).items()
            }
            self._widths: List[int] = [
                round(hmtx[name][0] * scale) for name in glyph_order
            ]

            head = font["head"]
            hhea = font["hhea"]
            self._bbox = [
                round(v * scale)
                for v in (head.xMin, head.yMin, head.xMax, head.yMax)
            ]
            self._ascent = round(hhea.ascent * scale)
            self._descent = round(hhea.descent * scale)
            os2 = font["OS/2"] if "OS/2" in font else None
            cap_height = getattr(os2, "sCapHeight", 0) if os2 is not None else 0
            self._cap_height = round(cap_height * scale) or self._ascent

            self.name = _pdf_name(font["name"].getDebugName(6) or self.path.stem)
        finally:
            font.close()

    def glyph_id(self, char: str) -> Optional[int]:
        return self._cmap.get(ord(char))

    def text_width(self, text: str, size: float) -> float:
        units = sum(self._widths[self._cmap.get(ord(c), NOTDEF_GID)] for c in text)
        return units * size / 1000.0

    def start(self) -> "_TrueTypeRun":
        return _TrueTypeRun(self)

    # ------------------------------------------------------------------
    # PDF objects
    # ------------------------------------------------------------------

    def font_dictionary(
        self, pdf: pikepdf.Pdf, used: Dict[int, str]
    ) -> pikepdf.Object:
        font_file = pdf.make_indirect(
            Stream(pdf, self._data, Length1=len(self._data))
        )
        descriptor = pdf.make_indirect(
            Dictionary(
                Type=Name.FontDescriptor,
                FontName=Name("/" + self.name),
                Flags=32,
                FontBBox=Array(self._bbox),
                ItalicAngle=0,
                Ascent=self._ascent,
                Descent=self._descent,
                CapHeight=self._cap_height,
                StemV=80,
                FontFile2=font_file,
            )
        )

        widths = Array()
        for gid in sorted(used):
            widths.append(gid)
            widths.append(Array([self._widths[gid]]))

        descendant = pdf.make_indirect(
            Dictionary(
                Type=Name.Font,
                Subtype=Name.CIDFontType2,
                BaseFont=Name("/" + self.name),
                CIDSystemInfo=Dictionary(
                    Registry=String("Adobe"),
                    Ordering=String("Identity"),
                    Supplement=0,
                ),
                FontDescriptor=descriptor,
                DW=self._widths[NOTDEF_GID],
                W=widths,
                CIDToGIDMap=Name.Identity,
            )
        )

        to_unicode = pdf.make_indirect(Stream(pdf, _to_unicode_cmap(used)))

        return pdf.make_indirect(
            Dictionary(
                Type=Name.Font,
                Subtype=Name.Type0,
                BaseFont=Name("/" + self.name),
                Encoding=Name("/Identity-H"),
                DescendantFonts=Array([descendant]),
                ToUnicode=to_unicode,
            )
        )


class _TrueTypeRun:
    def __init__(self, face: TrueTypeFont) -> None:
        self._face = face
        self._used: Dict[int, str] = {}
        self.missing = 0

    def encode(self, text: str) -> bytes:
        out = bytearray()
        for char in text:
            gid = self._face.glyph_id(char)
            if gid is None:
                self.missing += 1
                gid = NOTDEF_GID
            else:
                self._used.setdefault(gid, char)
            out += struct.pack(">H", gid)
        return bytes(out)

    def to_pdf(self, pdf: pikepdf.Pdf) -> pikepdf.Object:
        return self._face.font_dictionary(pdf, self._used)


def _pdf_name(value: str) -> str:
    return _PDF_NAME_CHARS.sub("", value) or "EmbeddedFont"


def _to_unicode_cmap(used: Dict[int, str]) -> bytes:
    entries: List[Tuple[int, str]] = sorted(used.items())

    lines = [
        "/CIDInit /ProcSet findresource begin",
        "12 dict begin",
        "begincmap",
        "/CIDSystemInfo << /Registry (Adobe) /Ordering (UCS) /Supplement 0 >> def",
        "/CMapName /Adobe-Identity-UCS def",
        "/CMapType 2 def",
        "1 begincodespacerange",
        "<0000> <FFFF>",
        "endcodespacerange",
    ]
    for start in range(0, len(entries), _BFCHAR_BLOCK):
        block = entries[start:start + _BFCHAR_BLOCK]
        lines.append(f"{len(block)} beginbfchar")
        for gid, char in block:
            lines.append(f"<{gid:04X}> <{char.encode('utf-16-be').hex().upper()}>")
        lines.append("endbfchar")
    lines.extend(
        [
            "endcmap",
            "CMapName currentdict /CMap defineresource pop",
            "end",
            "end",
        ]
    )
    return ("\n".join(lines) + "\n").encode("ascii")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_faces(
    font_path: Optional[Path],
    bold_font_path: Optional[Path] = None,
) -> Tuple[FontFace, FontFace]:
    """
    Resolve (regular, bold) faces.

    Without a configured font the base-14 Helvetica pair is used. A bold
    path without a regular one is ignored; a regular path without a bold
    one is used for both.
    """
    if font_path is None:
        return StandardFont("Helvetica"), StandardFont("Helvetica-Bold")

    regular = TrueTypeFont(font_path)
    if bold_font_path is None or Path(bold_font_path) == Path(font_path):
        return regular, regular
    return regular, TrueTypeFont(bold_font_path)
