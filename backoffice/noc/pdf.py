"""
PDF rendering of NOC / listing agreements.

The layout is drawn directly on a reportlab canvas. Positions are kept in a
top-down coordinate system (y grows towards the bottom of the page) and
converted when drawing.
"""

from __future__ import annotations

import io
import os
from typing import Callable, Optional

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.enums import TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

from core.logging_utils import get_noc_logger
from uploads.storage import BlobStoreError

logger = get_noc_logger()

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
BOTTOM_LIMIT = 50
TOP_AFTER_BREAK = 50

COLOR_ORANGE = colors.HexColor('#FF7F50')
COLOR_INK = colors.HexColor('#1E3A8A')
COLOR_PLACEHOLDER = colors.HexColor('#EEEEEE')

DEFAULT_COMPANY_NAME = 'Mateluxy Real Estate Broker L.L.C'
DEFAULT_COMPANY_DETAILS = (
    'Tel: +971 4 572 5420 Add: 601 Bay Square 13, Business Bay, Dubai, UAE.',
    'PO. Box: 453467 Email: info@mateluxy.com',
    'Website: www.mateluxy.com',
)

PROPERTY_TYPES = ('Villa', 'Apartment', 'Office', 'Townhouse')
OCCUPANCY_OPTIONS = ('Vacant', 'Tenanted', 'Furnished', 'Unfurnished')
PERIOD_OPTIONS = (1, 2, 3, 6)

DISCLAIMERS = (
    'I the undersigned confirm that I am the owner of the above property and / or have the legal '
    'authority to sign on behalf of the named owner(s).',
    'Should this property be subject to an offer I/we will notify the brokerage of this. This Agreement '
    'may be terminated by either party at any time upon seven (7) days written notice to the other party',
)

DISCLAIMER_STYLE = ParagraphStyle('disclaimer', fontName='Helvetica', fontSize=9, leading=11, alignment=TA_JUSTIFY)


def get_ordinal(n: int) -> str:
    """English ordinal suffix: 1 -> 'st', 2 -> 'nd', 11 -> 'th', 23 -> 'rd'."""
    if 10 <= n % 100 <= 20:
        return 'th'
    return {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')


def format_date(value) -> str:
    if not value:
        return ''
    return f"{value.day}/{value.month}/{value.year}"


def _text(value) -> str:
    return '' if value is None else str(value)


class NocPdfRenderer:
    """
    Render a NOC and its owners to PDF bytes.

    ``fetch_image`` downloads remote signature images; it must raise
    BlobStoreError when the image cannot be retrieved, in which case only that
    image is left out.
    """

    def __init__(self, fetch_image: Callable[[str], bytes], logo_path: Optional[str] = None,
                 company_name: Optional[str] = None, company_details=None):
        self.fetch_image = fetch_image
        self.logo_path = logo_path if logo_path is not None else getattr(settings, 'NOC_LOGO_PATH', '')
        self.company_name = company_name or getattr(settings, 'NOC_COMPANY_NAME', DEFAULT_COMPANY_NAME)
        self.company_details = tuple(
            company_details or getattr(settings, 'NOC_COMPANY_DETAILS', DEFAULT_COMPANY_DETAILS)
        )

    def render(self, noc) -> bytes:
        buffer = io.BytesIO()
        self.canvas = canvas.Canvas(buffer, pagesize=A4)
        self.canvas.setTitle(f"NOC {noc.pk}")
        self.canvas.setAuthor(self.company_name)

        owners = list(noc.owners.all())
        y = self._draw_header(MARGIN)
        y = self._draw_owners(y, owners)
        y = self._draw_property(y, noc)
        y = self._draw_terms(y, noc)
        self._draw_signatures(y, owners)

        self.canvas.showPage()
        self.canvas.save()
        return buffer.getvalue()

    # Drawing primitives

    def _baseline(self, y: float, size: float) -> float:
        return PAGE_HEIGHT - y - size * 0.8

    def _draw_text(self, text, x, y, font='Helvetica', size=10, color=colors.black):
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(color)
        self.canvas.drawString(x, self._baseline(y, size), _text(text))

    def _draw_value(self, value, x, y, max_width: Optional[float] = None):
        """Filled-in form values are typed in dark blue Courier, truncated with an ellipsis."""
        text = _text(value)
        if not text:
            return
        font, size = 'Courier-Bold', 11
        limit = max_width if max_width is not None else PAGE_WIDTH - MARGIN - x
        if stringWidth(text, font, size) > limit:
            while text and stringWidth(text + '...', font, size) > limit:
                text = text[:-1]
            text += '...'
        self._draw_text(text, x, y - 2, font, size, COLOR_INK)

    def _draw_rule(self, x1, x2, y, width=0.5):
        self.canvas.setStrokeColor(colors.black)
        self.canvas.setLineWidth(width)
        self.canvas.line(x1, PAGE_HEIGHT - y, x2, PAGE_HEIGHT - y)

    def _draw_section_header(self, y, title):
        self.canvas.setFillColor(COLOR_ORANGE)
        self.canvas.rect(MARGIN, PAGE_HEIGHT - y - 20, CONTENT_WIDTH, 20, stroke=0, fill=1)
        self._draw_text(title, MARGIN + 10, y + 5, 'Helvetica-Bold', 10, colors.white)
        return y + 25

    def _draw_checkbox(self, x, y, label, checked):
        self.canvas.setStrokeColor(colors.black)
        self.canvas.setLineWidth(1)
        self.canvas.circle(x, PAGE_HEIGHT - y, 6, stroke=1, fill=0)
        if checked:
            self.canvas.setStrokeColor(COLOR_INK)
            self.canvas.setLineWidth(1.5)
            tick = self.canvas.beginPath()
            tick.moveTo(x - 3, PAGE_HEIGHT - y)
            tick.lineTo(x - 1, PAGE_HEIGHT - y - 3)
            tick.lineTo(x + 4, PAGE_HEIGHT - y + 3)
            self.canvas.drawPath(tick, stroke=1, fill=0)
        self._draw_text(label, x + 15, y - 4)

    def _draw_labelled_line(self, y, label, value, x=MARGIN, colon_x=None, line_end=None, value_offset=10):
        """Bold label, optional colon column and an underline carrying the value."""
        line_end = line_end if line_end is not None else PAGE_WIDTH - MARGIN
        self._draw_text(label, x, y + 5, 'Helvetica-Bold')
        if colon_x is not None:
            self._draw_text(':', colon_x, y + 5, 'Helvetica-Bold')
            line_start = colon_x + 10
        else:
            line_start = x + stringWidth(label, 'Helvetica-Bold', 10) + 5
        self._draw_rule(line_start, line_end, y + 15)
        self._draw_value(value, line_start + value_offset, y + 2, line_end - line_start - value_offset)

    def _ensure_space(self, y, needed):
        if y + needed > PAGE_HEIGHT - BOTTOM_LIMIT:
            self.canvas.showPage()
            return TOP_AFTER_BREAK
        return y

    # Blocks

    def _draw_header(self, y):
        self._draw_logo(y)
        self._draw_text(self.company_name, MARGIN, y, 'Helvetica-Bold', 14)
        y += 20
        for line in self.company_details:
            self._draw_text(line, MARGIN, y, 'Helvetica', 9)
            y += 12
        y += 13
        self._draw_text('NOC / LISTING AGREEMENT/ AGREEMENT BETWEEN OWNER & BROKER', MARGIN, y, 'Helvetica-Bold', 12)
        return y + 25

    def _draw_logo(self, y):
        x = PAGE_WIDTH - MARGIN - 80
        if self.logo_path and os.path.exists(self.logo_path):
            try:
                self.canvas.drawImage(
                    ImageReader(self.logo_path), x, PAGE_HEIGHT - y - 80, width=80, height=80,
                    preserveAspectRatio=True, mask='auto',
                )
                return
            except (OSError, ValueError) as exc:
                logger.warning(f"NOC logo could not be drawn: {exc}")
        self.canvas.setFillColor(COLOR_PLACEHOLDER)
        self.canvas.circle(PAGE_WIDTH - MARGIN - 40, PAGE_HEIGHT - y - 40, 30, stroke=0, fill=1)

    def _draw_owners(self, y, owners):
        y = self._draw_section_header(y, 'LANDLORD / OWNER DETAILS') + 5
        if not owners:
            self._draw_text('No owners details provided.', MARGIN, y + 5)
            return y + 20

        for index, owner in enumerate(owners, start=1):
            y = self._ensure_space(y, 80)
            self._draw_labelled_line(y, f"{index}{get_ordinal(index)} Owner Name:", owner.name)
            y += 20

            phone = f"{owner.country_code or ''} {owner.phone}".strip() if owner.phone else ''
            self._draw_labelled_line(y, 'ID/Passport:', owner.emirates_id, line_end=MARGIN + 250)
            self._draw_labelled_line(y, 'Mobile:', phone, x=MARGIN + 260)
            y += 20

            self._draw_labelled_line(y, 'Issue Date:', format_date(owner.issue_date), line_end=MARGIN + 250)
            self._draw_labelled_line(y, 'Expiry Date:', format_date(owner.expiry_date), x=MARGIN + 260)
            y += 25
        return y

    def _draw_property(self, y, noc):
        y = self._ensure_space(y, 250)
        y = self._draw_section_header(y, 'PROPERTY DETAILS') + 15

        property_type = (noc.property_type or '').lower()
        for column, label in zip((40, 150, 260, 370), PROPERTY_TYPES):
            self._draw_checkbox(MARGIN + column, y, label, property_type == label.lower())
        y += 20
        for column, label in zip((40, 150, 260, 370), OCCUPANCY_OPTIONS):
            self._draw_checkbox(MARGIN + column, y, label, False)
        y += 20

        self._draw_text('Vacating Date:', MARGIN + 30, y + 5)
        self._draw_rule(MARGIN + 110, MARGIN + 300, y + 15)
        y += 25

        self._draw_labelled_line(y, 'Building / Project name :', noc.building_project_name)
        y += 25
        for label, value in (
            ('Property Number', ''),
            ('Location', noc.location),
            ('Community', noc.community),
            ('Street Name', noc.street_name),
        ):
            self._draw_labelled_line(y, label, value, colon_x=MARGIN + 100)
            y += 25

        for left, right in (
            (('BUA (SQFT)', noc.build_up_area), ('Plot (SQFT)', noc.plot_area)),
            (('Bedrooms', noc.bedrooms), ('Bathrooms', noc.bathrooms)),
            (('Rental Amount', noc.rental_amount), ('Parking', noc.parking)),
        ):
            self._draw_labelled_line(y, left[0], left[1], colon_x=MARGIN + 100, line_end=MARGIN + 250)
            self._draw_labelled_line(y, right[0], right[1], x=MARGIN + 260, colon_x=MARGIN + 330)
            y += 25

        self._draw_labelled_line(y, 'Sale Amount', noc.sale_amount, colon_x=MARGIN + 100)
        return y + 35

    def _draw_terms(self, y, noc):
        y = self._ensure_space(y, 150)
        y = self._draw_section_header(y, 'TERMS AND CONDITIONS') + 10

        self._draw_text('The landlord / legal representative has agreed to appoint', MARGIN, y, 'Helvetica-Bold', 9)
        self._draw_text(self.company_name, PAGE_WIDTH - MARGIN - 180, y)
        y += 15

        agreement_type = (noc.agreement_type or '').lower()
        self._draw_checkbox(MARGIN + 40, y, 'EXCLUSIVE', agreement_type == 'exclusive')
        self._draw_checkbox(MARGIN + 150, y, 'NON-EXCLUSIVE', agreement_type == 'non-exclusive')
        y += 25

        self._draw_text('Broker to list and advertise the above property for a period till', MARGIN, y,
                        'Helvetica-Bold', 9)
        self._draw_rule(MARGIN + 350, MARGIN + 400, y + 10)
        self._draw_text('/', MARGIN + 405, y)
        self._draw_rule(MARGIN + 410, MARGIN + 460, y + 10)
        self._draw_text('/', MARGIN + 465, y)
        self._draw_rule(MARGIN + 470, PAGE_WIDTH - MARGIN, y + 10)
        agreement_date = noc.agreement_date
        if agreement_date:
            self._draw_value(agreement_date.day, MARGIN + 360, y + 2, 40)
            self._draw_value(agreement_date.month, MARGIN + 420, y + 2, 40)
            self._draw_value(agreement_date.year, MARGIN + 480, y + 2)
        y += 20

        for column, months in zip((40, 150, 230, 320), PERIOD_OPTIONS):
            self._draw_checkbox(MARGIN + column, y, f"{months} MONTH", noc.period_months == months)
        y += 30

        y = self._ensure_space(y, 80)
        for text in DISCLAIMERS:
            paragraph = Paragraph(text, DISCLAIMER_STYLE)
            _, height = paragraph.wrapOn(self.canvas, CONTENT_WIDTH, PAGE_HEIGHT)
            paragraph.drawOn(self.canvas, MARGIN, PAGE_HEIGHT - y - height)
            y += max(height, 11) + 14
        return y + 15

    def _draw_signatures(self, y, owners):
        y = self._ensure_space(y, 80)
        self._draw_text('SIGNATURES', MARGIN, y, 'Helvetica-Bold', 12)
        y += 20

        for index, owner in enumerate(owners, start=1):
            y = self._ensure_space(y, 60)
            self._draw_text(f"{index}{get_ordinal(index)} Owner Name:", MARGIN, y, 'Helvetica-Bold', 9)
            self._draw_rule(MARGIN + 100, MARGIN + 220, y + 10)
            self._draw_value(owner.name, MARGIN + 110, y - 2, 110)

            self._draw_text('Signature:', MARGIN + 230, y, 'Helvetica-Bold', 9)
            self._draw_rule(MARGIN + 280, MARGIN + 400, y + 10)
            if owner.signature_url:
                self._draw_signature_image(owner.signature_url, MARGIN + 290, y - 25)

            self._draw_text('Date:', MARGIN + 410, y, 'Helvetica-Bold', 9)
            self._draw_rule(MARGIN + 440, PAGE_WIDTH - MARGIN, y + 10)
            self._draw_value(format_date(owner.signature_date), MARGIN + 450, y - 2)
            y += 50
        return y

    def _draw_signature_image(self, url, x, y):
        try:
            image = ImageReader(io.BytesIO(self.fetch_image(url)))
            self.canvas.drawImage(image, x, PAGE_HEIGHT - y - 35, width=80, height=35,
                                  preserveAspectRatio=True, mask='auto')
        except (BlobStoreError, OSError, ValueError) as exc:
            logger.upstream_failure('signature-image', f"Signature image skipped: {url}",
                                    extra_data={'error': str(exc)}, exc_info=False)
