from __future__ import annotations
from io import BytesIO
from typing import Dict, Iterable, List, Optional

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.pdfgen import canvas

from core.helpers.date_time_helper import to_iso
from ..exceptions import StampingError
from ..models.signature_placement import STAMP_HEIGHT, STAMP_WIDTH, StampSpec
from ..models.stamp_marker import CUSTODY_MARKER_KEY, STAMP_PREFIX


class PdfSigner:
    """
    Stamps approver boxes onto PDF pages and tags documents with their
    custody request id. Works on bytes; never touches the filesystem.
    """

    name_font_size: int = 9
    date_font_size: int = 8

    @staticmethod
    def _make_overlay(page_w: float, page_h: float, stamps: Iterable[StampSpec]) -> bytes:
        """
        Erzeugt eine Overlay-Seite (gleich groß wie Zielseite) mit einem
        Rahmen pro Stempel: erste Zeile Name, zweite Zeile Zeitstempel.
        """
        buf = BytesIO()
        # uncompressed so the stamp text stays greppable in the raw file
        c = canvas.Canvas(buf, pagesize=(page_w, page_h), pageCompression=0)
        for stamp in stamps:
            x = float(stamp.placement.x)
            y_bottom = stamp.placement.bottom_left_y(page_h)

            c.setStrokeColorRGB(0.1, 0.2, 0.5)
            c.setLineWidth(1)
            c.rect(x, y_bottom, STAMP_WIDTH, STAMP_HEIGHT, stroke=1, fill=0)

            c.setFillColorRGB(0.1, 0.2, 0.5)
            c.setFont("Helvetica-Bold", PdfSigner.name_font_size)
            c.drawString(x + 5, y_bottom + STAMP_HEIGHT - 14, f"{STAMP_PREFIX}{stamp.identity}")
            c.setFont("Helvetica", PdfSigner.date_font_size)
            c.drawString(x + 5, y_bottom + 8, to_iso(stamp.signed_at) or "")
        c.save()
        return buf.getvalue()

    @staticmethod
    def stamp(data: bytes, stamps: List[StampSpec]) -> bytes:
        """
        Return a copy of *data* with every stamp drawn on its page.
        Stamps for the same page share one overlay.
        """
        try:
            reader = PdfReader(BytesIO(data))
            by_page: Dict[int, List[StampSpec]] = {}
            for stamp in stamps:
                if not 0 <= stamp.placement.page_index < len(reader.pages):
                    raise StampingError(
                        f"Stamp for {stamp.identity} targets page {stamp.placement.page_index}, "
                        f"document has {len(reader.pages)} page(s)"
                    )
                by_page.setdefault(stamp.placement.page_index, []).append(stamp)

            writer = PdfWriter()
            for i, page in enumerate(reader.pages):
                if i in by_page:
                    box = page.mediabox
                    w, h = float(box.width), float(box.height)
                    overlay_pdf = PdfSigner._make_overlay(w, h, by_page[i])
                    overlay_reader = PdfReader(BytesIO(overlay_pdf))
                    page.merge_page(overlay_reader.pages[0])
                writer.add_page(page)
            if reader.metadata:
                writer.add_metadata({k: str(reader.metadata[k]) for k in reader.metadata.keys()})

            out = BytesIO()
            writer.write(out)
            return out.getvalue()
        except StampingError:
            raise
        except (PyPdfError, ValueError, KeyError, OSError) as exc:
            raise StampingError(f"Cannot stamp document: {exc}") from exc

    @staticmethod
    def tag(data: bytes, request_id: str, *, producer: Optional[str] = None) -> bytes:
        """Write the custody request id into the document info dictionary."""
        try:
            reader = PdfReader(BytesIO(data))
            writer = PdfWriter(clone_from=reader)
            meta = {CUSTODY_MARKER_KEY: request_id}
            if producer:
                meta["/Producer"] = producer
            writer.add_metadata(meta)
            out = BytesIO()
            writer.write(out)
            return out.getvalue()
        except (PyPdfError, ValueError, KeyError, OSError) as exc:
            raise StampingError(f"Cannot tag document: {exc}") from exc
