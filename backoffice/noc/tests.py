import json
import re
from datetime import date
from unittest.mock import MagicMock, patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import IntegrityError
from django.test import SimpleTestCase, TestCase

from core.exceptions import Conflict, NotFound
from noc.forms import NocForm
from noc.models import Noc, NocOwner
from noc.pdf import NocPdfRenderer, format_date, get_ordinal
from noc.services import NocService, join_community, safe_date
from uploads.storage import BlobStoreError

User = get_user_model()

PDF_URL = 'https://listings.s3.me-central-1.amazonaws.com/noc.pdf'


def page_count(pdf):
    return len(re.findall(rb'/Type /Page\b', pdf))


def signature_url(index):
    return f'https://listings.s3.me-central-1.amazonaws.com/sig-{index}.png'


class HelperTests(SimpleTestCase):
    def test_get_ordinal(self):
        cases = {1: 'st', 2: 'nd', 3: 'rd', 4: 'th', 11: 'th', 12: 'th', 13: 'th', 21: 'st', 22: 'nd', 111: 'th'}
        for number, suffix in cases.items():
            self.assertEqual(get_ordinal(number), suffix, number)

    def test_safe_date(self):
        self.assertEqual(safe_date('2024-03-05'), date(2024, 3, 5))
        self.assertEqual(safe_date('2024-03-05T10:00:00.000Z'), date(2024, 3, 5))
        self.assertEqual(safe_date(date(2024, 1, 1)), date(2024, 1, 1))
        for value in (None, '', '   ', 'not a date', '2024-02-30'):
            self.assertIsNone(safe_date(value), value)

    def test_join_community(self):
        self.assertEqual(join_community(['Dubai Marina', '', 'JBR']), 'Dubai Marina, JBR')
        self.assertEqual(join_community('Downtown'), 'Downtown')
        self.assertEqual(join_community(None), '')

    def test_format_date(self):
        self.assertEqual(format_date(date(2024, 3, 5)), '5/3/2024')
        self.assertEqual(format_date(None), '')


class NocFormTests(SimpleTestCase):
    def test_community_list_within_column_length(self):
        form = NocForm(data={'community': ['Dubai Marina', 'JBR']})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['community'], ['Dubai Marina', 'JBR'])

    def test_joined_community_longer_than_column_is_rejected(self):
        form = NocForm(data={'community': ['x' * 300, 'y' * 300]})
        self.assertFalse(form.is_valid())
        self.assertIn('community', form.errors)


class NocServiceTests(TestCase):
    def setUp(self):
        self.blob_store = MagicMock()
        self.blob_store.upload_file.side_effect = lambda uploaded: signature_url(uploaded.name)
        self.blob_store.store.return_value = PDF_URL
        self.renderer = MagicMock()
        self.renderer.render.return_value = b'%PDF-1.4'
        self.service = NocService(self.blob_store, self.renderer)

    def _fields(self, **overrides):
        fields = {
            'property_type': 'Villa', 'building_project_name': 'Palm Residences',
            'community': ['Palm Jumeirah', 'Frond A'], 'agreement_type': 'exclusive',
            'period_months': 3, 'agreement_date': '2024-06-01', 'client_phone': '+971500000001',
        }
        fields.update(overrides)
        return fields

    def test_create_links_signatures_by_position(self):
        owners = [{'name': 'First'}, {'name': 'Second'}, {'name': 'Third', 'issue_date': 'garbage'}]
        files = {
            'signatures_0': SimpleUploadedFile('0', b'sig', 'image/png'),
            'signatures_2': SimpleUploadedFile('2', b'sig', 'image/png'),
        }

        noc = self.service.create(self._fields(), owners, files)

        stored = list(noc.owners.all())
        self.assertEqual([owner.name for owner in stored], ['First', 'Second', 'Third'])
        self.assertEqual([owner.position for owner in stored], [0, 1, 2])
        self.assertEqual([owner.signature_url for owner in stored], [signature_url('0'), None, signature_url('2')])
        self.assertIsNone(stored[2].issue_date)
        self.assertEqual(noc.community, 'Palm Jumeirah, Frond A')
        self.assertEqual(noc.agreement_date, date(2024, 6, 1))
        self.assertEqual(noc.pdf_url, PDF_URL)
        self.blob_store.store.assert_called_once_with(b'%PDF-1.4', 'application/pdf', f'noc-{noc.id}.pdf')

    def test_failed_signature_upload_gives_null_url(self):
        self.blob_store.upload_file.side_effect = None
        self.blob_store.upload_file.return_value = None

        noc = self.service.create(self._fields(), [{'name': 'Only'}],
                                  {'signatures_0': SimpleUploadedFile('0', b'sig', 'image/png')})

        self.assertIsNone(noc.owners.get().signature_url)

    def test_duplicate_client_phone_is_conflict_and_cleans_up(self):
        self.service.create(self._fields(), [])
        self.blob_store.reset_mock()

        with self.assertRaises(Conflict):
            self.service.create(self._fields(), [{'name': 'Dup'}],
                                {'signatures_0': SimpleUploadedFile('0', b'sig', 'image/png')})

        self.blob_store.delete.assert_called_once_with(signature_url('0'))
        self.assertEqual(Noc.objects.count(), 1)
        self.assertFalse(NocOwner.objects.filter(name='Dup').exists())

    def test_other_integrity_errors_propagate(self):
        with patch('noc.services.Noc.objects.create', side_effect=IntegrityError('other')):
            with self.assertRaises(IntegrityError):
                self.service.create(self._fields(client_phone='+971500000099'), [])

    def test_render_failure_leaves_pdf_url_empty(self):
        self.renderer.render.side_effect = RuntimeError('font missing')

        with patch('noc.services.logger') as mock_logger:
            noc = self.service.create(self._fields(), [])

        self.assertIsNone(noc.pdf_url)
        mock_logger.upstream_failure.assert_called_once()

    def test_store_failure_leaves_pdf_url_empty(self):
        self.blob_store.store.return_value = None
        self.assertIsNone(self.service.create(self._fields(), []).pdf_url)

    def test_find_all_newest_first_and_find_one(self):
        first = self.service.create(self._fields(client_phone='1'), [])
        second = self.service.create(self._fields(client_phone='2'), [])
        Noc.objects.filter(pk=first.pk).update(created_at=second.created_at.replace(year=2000))

        self.assertEqual([noc.pk for noc in self.service.find_all()], [second.pk, first.pk])
        self.assertEqual(self.service.find_one(first.pk).pk, first.pk)
        with self.assertRaises(NotFound):
            self.service.find_one('12345678-1234-5678-1234-567812345678')

    def test_get_or_regenerate_pdf(self):
        self.blob_store.store.return_value = None
        noc = self.service.create(self._fields(), [])

        with self.assertRaises(NotFound):
            self.service.get_or_regenerate_pdf(noc.pk)

        self.blob_store.store.return_value = PDF_URL
        self.assertEqual(self.service.get_or_regenerate_pdf(noc.pk), {'url': PDF_URL})
        self.assertEqual(Noc.objects.get(pk=noc.pk).pdf_url, PDF_URL)

        self.renderer.render.reset_mock()
        self.assertEqual(self.service.get_or_regenerate_pdf(noc.pk), {'url': PDF_URL})
        self.renderer.render.assert_not_called()


class NocPdfRendererTests(TestCase):
    def _noc(self, owner_count):
        noc = Noc.objects.create(
            property_type='Apartment', building_project_name='A' * 300, community='Dubai Marina',
            agreement_type='non-exclusive', period_months=6, agreement_date=date(2024, 6, 1),
        )
        for position in range(owner_count):
            NocOwner.objects.create(
                noc=noc, position=position, name=f'Owner {position}', phone='501234567', country_code='+971',
                issue_date=date(2020, 1, 1), signature_url=signature_url(position),
            )
        return noc

    def test_renders_pdf_and_skips_unavailable_signatures(self):
        fetch = MagicMock(side_effect=BlobStoreError('offline'))
        renderer = NocPdfRenderer(fetch_image=fetch, logo_path='/nonexistent/logo.png')

        with patch('noc.pdf.logger') as mock_logger:
            pdf = renderer.render(self._noc(2))

        self.assertTrue(pdf.startswith(b'%PDF'))
        self.assertEqual(fetch.call_count, 2)
        self.assertEqual(mock_logger.upstream_failure.call_count, 2)

    def test_many_owners_span_pages(self):
        renderer = NocPdfRenderer(fetch_image=MagicMock(side_effect=BlobStoreError('offline')), logo_path='')

        with patch('noc.pdf.logger'):
            short = renderer.render(self._noc(1))
            long = renderer.render(self._noc(12))

        self.assertGreater(page_count(long), page_count(short))

    def test_renders_without_owners(self):
        noc = Noc.objects.create(property_type='Villa')
        pdf = NocPdfRenderer(fetch_image=MagicMock(), logo_path='').render(noc)
        self.assertTrue(pdf.startswith(b'%PDF'))


class NocViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='listing@example.com', password='x')
        self.client.force_login(self.user)
        self.blob_store = MagicMock()
        self.blob_store.upload_file.return_value = signature_url(0)
        self.blob_store.store.return_value = PDF_URL
        patcher = patch('noc.services.get_blob_store', return_value=self.blob_store)
        patcher.start()
        self.addCleanup(patcher.stop)
        renderer_patcher = patch('noc.services.NocPdfRenderer')
        renderer_patcher.start().return_value.render.return_value = b'%PDF-1.4'
        self.addCleanup(renderer_patcher.stop)

    def test_multipart_create_with_owners_json(self):
        response = self.client.post('/noc/', {
            'property_type': 'Villa',
            'client_phone': '+971500000002',
            'owners': json.dumps([{'name': 'Hana', 'emirates_id': '784-1990-1234567-1'}]),
            'signatures_0': SimpleUploadedFile('sig.png', b'sig', 'image/png'),
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['owners'][0]['name'], 'Hana')
        self.assertEqual(body['owners'][0]['signature_url'], signature_url(0))
        self.assertEqual(body['pdf_url'], PDF_URL)

    def test_duplicate_phone_is_conflict(self):
        payload = {'property_type': 'Villa', 'client_phone': '+971500000003', 'owners': []}
        self.client.post('/noc/', payload, content_type='application/json')

        response = self.client.post('/noc/', payload, content_type='application/json')

        self.assertEqual(response.status_code, 409)

    def test_invalid_owners_are_rejected(self):
        response = self.client.post('/noc/', {'owners': 'not json'})
        self.assertEqual(response.status_code, 400)

        response = self.client.post('/noc/', {'owners': ['x']}, content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('owners', response.json()['errors'])

    def test_list_detail_and_pdf(self):
        noc_id = self.client.post('/noc/', {'property_type': 'Office'}, content_type='application/json').json()['id']

        self.assertEqual([item['id'] for item in self.client.get('/noc/').json()], [noc_id])
        self.assertEqual(self.client.get(f'/noc/{noc_id}/').json()['property_type'], 'Office')
        self.assertEqual(self.client.get(f'/noc/{noc_id}/pdf/').json(), {'url': PDF_URL})
        self.assertEqual(self.client.get('/noc/missing/').status_code, 404)

    def test_overlong_community_is_a_validation_error(self):
        response = self.client.post(
            '/noc/', {'community': ['a' * 250, 'b' * 250, 'c']}, content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('community', response.json()['errors'])
        self.assertFalse(Noc.objects.exists())
