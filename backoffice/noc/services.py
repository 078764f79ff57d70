"""NOC (listing agreement) records: creation with signatures, listing and PDF delivery."""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from django.db import IntegrityError, transaction
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import Conflict, NotFound
from core.logging_utils import get_noc_logger
from core.shortcuts import get_object_or_not_found
from noc.models import Noc, NocOwner
from noc.pdf import NocPdfRenderer
from uploads.storage import S3BlobStore, get_blob_store

logger = get_noc_logger()

OWNER_FIELDS = ('name', 'emirates_id', 'country_code', 'phone')
OWNER_DATE_FIELDS = ('issue_date', 'expiry_date', 'signature_date')


def safe_date(value) -> Optional[date]:
    """Parse a date leniently. Missing, blank or unparsable input gives None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = parse_date(text)
        if parsed is None:
            moment = parse_datetime(text)
            parsed = moment.date() if moment else None
    except ValueError:
        # Well-formed but impossible, e.g. 2024-02-30
        return None
    return parsed


def join_community(value) -> str:
    if isinstance(value, (list, tuple)):
        return ', '.join(str(part) for part in value if part)
    return value or ''


def signature_field(position: int) -> str:
    return f"signatures_{position}"


class NocService:
    def __init__(self, blob_store: S3BlobStore, renderer: Optional[NocPdfRenderer] = None):
        self.blob_store = blob_store
        self.renderer = renderer or NocPdfRenderer(fetch_image=blob_store.fetch)

    def create(self, fields: Dict[str, Any], owners: Iterable[Dict[str, Any]],
               files: Optional[Mapping[str, Any]] = None) -> Noc:
        """
        Create a NOC with its owners, then render and attach its PDF.

        The owner at position ``i`` gets the signature uploaded as
        ``signatures_<i>``, if any. A PDF failure leaves ``pdf_url`` empty and
        does not fail the create.
        """
        files = files or {}
        uploaded: List[str] = []
        owner_rows: List[NocOwner] = []

        for position, owner in enumerate(owners):
            signature_url = None
            signature = files.get(signature_field(position))
            if signature is not None:
                signature_url = self.blob_store.upload_file(signature)
                if signature_url:
                    uploaded.append(signature_url)
                else:
                    logger.warning(f"Signature upload failed for owner {position}")

            owner_rows.append(NocOwner(
                position=position,
                signature_url=signature_url,
                **{name: owner.get(name) or '' for name in OWNER_FIELDS},
                **{name: safe_date(owner.get(name)) for name in OWNER_DATE_FIELDS},
            ))

        values = dict(fields)
        values['community'] = join_community(values.get('community'))
        values['agreement_date'] = safe_date(values.get('agreement_date'))
        values['client_phone'] = values.get('client_phone') or None

        created = False
        try:
            with transaction.atomic():
                noc = Noc.objects.create(**values)
                for row in owner_rows:
                    row.noc = noc
                NocOwner.objects.bulk_create(owner_rows)
            created = True
        except IntegrityError as exc:
            phone = values['client_phone']
            if phone and Noc.objects.filter(client_phone=phone).exists():
                logger.warning("Duplicate NOC client phone rejected", extra_data={'client_phone': phone})
                raise Conflict('An NOC with this phone number already exists.') from exc
            raise
        finally:
            if not created:
                for url in uploaded:
                    self.blob_store.delete(url)

        logger.info(f"NOC {noc.id} created", extra_data={'owners': len(owner_rows)})
        self.attach_pdf(noc)
        return self.find_one(noc.id)

    def find_all(self) -> List[Noc]:
        return list(Noc.objects.prefetch_related('owners').order_by('-created_at'))

    def find_one(self, noc_id: Any) -> Noc:
        return get_object_or_not_found(
            Noc.objects.prefetch_related('owners'), noc_id, f"NOC with ID {noc_id} not found"
        )

    def attach_pdf(self, noc: Noc) -> Optional[str]:
        """Render ``noc``, store the PDF and save its URL. Returns None on any failure."""
        try:
            pdf = self.renderer.render(noc)
        except Exception as exc:
            logger.upstream_failure('pdf-renderer', f"Failed to render PDF for NOC {noc.id}",
                                    extra_data={'error': str(exc)})
            return None

        url = self.blob_store.store(pdf, 'application/pdf', f"noc-{noc.id}.pdf")
        if not url:
            logger.warning(f"PDF for NOC {noc.id} could not be stored")
            return None

        noc.pdf_url = url
        noc.save(update_fields=['pdf_url', 'updated_at'])
        return url

    def get_or_regenerate_pdf(self, noc_id: Any) -> Dict[str, str]:
        noc = self.find_one(noc_id)
        if noc.pdf_url:
            return {'url': noc.pdf_url}

        url = self.attach_pdf(noc)
        if not url:
            raise NotFound('PDF not available')
        return {'url': url}


def get_noc_service() -> NocService:
    return NocService(get_blob_store())
