from unittest.mock import MagicMock, patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase

from core.exceptions import BadRequest, NotFound, UpstreamError
from watermarks.models import Watermark
from watermarks.services import WatermarkService

User = get_user_model()

IMAGE_URL = 'https://listings.s3.me-central-1.amazonaws.com/mark.png'


class WatermarkServiceTests(TestCase):
    def setUp(self):
        self.blob_store = MagicMock()
        self.blob_store.upload_file.return_value = IMAGE_URL
        self.service = WatermarkService(self.blob_store)

    def test_create_image_applies_defaults(self):
        watermark = self.service.create_image({'name': 'Logo'}, SimpleUploadedFile('mark.png', b'x', 'image/png'))

        self.assertEqual(watermark.type, Watermark.Type.IMAGE)
        self.assertEqual(watermark.image_url, IMAGE_URL)
        self.assertEqual(watermark.position, 'bottom-right')
        self.assertEqual(watermark.opacity, 0.8)
        self.assertEqual(watermark.scale, 0.15)
        self.assertEqual(watermark.rotation, 0)
        self.assertEqual(watermark.blend_mode, 'Normal')
        self.assertFalse(watermark.is_active)

    def test_explicit_zero_is_not_replaced_by_default(self):
        watermark = self.service.create_text({'name': 'Faint', 'text': 'DRAFT', 'opacity': 0.0, 'scale': None})

        self.assertEqual(watermark.opacity, 0.0)
        self.assertEqual(watermark.scale, 0.15)
        self.assertEqual(watermark.text_color, '#FFFFFF')

    def test_create_image_upload_failure(self):
        self.blob_store.upload_file.return_value = None
        with self.assertRaises(UpstreamError):
            self.service.create_image({'name': 'Logo'}, SimpleUploadedFile('mark.png', b'x', 'image/png'))
        self.assertFalse(Watermark.objects.exists())

    def test_create_text_requires_text(self):
        with self.assertRaises(BadRequest):
            self.service.create_text({'name': 'Empty', 'text': ''})

    def test_activate_leaves_exactly_one_active(self):
        first = self.service.create_text({'name': 'A', 'text': 'A'})
        second = self.service.create_text({'name': 'B', 'text': 'B'})

        self.service.activate(first.pk)
        self.service.activate(second.pk)

        self.assertEqual(list(Watermark.objects.filter(is_active=True)), [second])
        self.assertEqual(self.service.get_active(), second)

    def test_deactivate_all(self):
        watermark = self.service.create_text({'name': 'A', 'text': 'A'})
        self.service.activate(watermark.pk)

        self.assertEqual(self.service.deactivate_all(), 1)
        self.assertIsNone(self.service.get_active())

    def test_update_only_touches_given_fields(self):
        watermark = self.service.create_text({'name': 'A', 'text': 'A', 'position': 'center'})

        updated = self.service.update(watermark.pk, {'opacity': 0.5})

        self.assertEqual(updated.opacity, 0.5)
        self.assertEqual(updated.position, 'center')

    def test_delete_removes_stored_image(self):
        watermark = self.service.create_image({'name': 'Logo'}, SimpleUploadedFile('mark.png', b'x', 'image/png'))

        self.service.delete(watermark.pk)

        self.blob_store.delete.assert_called_once_with(IMAGE_URL)
        self.assertFalse(Watermark.objects.exists())

    def test_delete_text_watermark_skips_blob_store(self):
        watermark = self.service.create_text({'name': 'A', 'text': 'A'})
        self.service.delete(watermark.pk)
        self.blob_store.delete.assert_not_called()

    def test_missing_watermark(self):
        with self.assertRaises(NotFound):
            self.service.activate('12345678-1234-5678-1234-567812345678')


class WatermarkViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='design@example.com', password='x')
        self.client.force_login(self.user)
        self.blob_store = MagicMock()
        self.blob_store.upload_file.return_value = IMAGE_URL
        patcher = patch('watermarks.services.get_blob_store', return_value=self.blob_store)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_multipart_post_creates_image_watermark(self):
        response = self.client.post('/watermarks/', {
            'name': 'Logo', 'opacity': '0.6', 'file': SimpleUploadedFile('mark.png', b'x', 'image/png'),
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['type'], 'image')
        self.assertEqual(response.json()['opacity'], 0.6)

    def test_json_post_creates_text_watermark(self):
        response = self.client.post('/watermarks/', {'name': 'Draft', 'text': 'DRAFT', 'rotation': 45},
                                    content_type='application/json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['type'], 'text')
        self.assertEqual(response.json()['rotation'], 45.0)

    def test_image_type_without_file_is_rejected(self):
        response = self.client.post('/watermarks/', {'name': 'Logo', 'type': 'image'}, content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_opacity_out_of_range_is_rejected(self):
        response = self.client.post('/watermarks/', {'name': 'x', 'text': 'x', 'opacity': 2},
                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('opacity', response.json()['errors'])

    def test_activate_active_and_deactivate_flow(self):
        watermark_id = self.client.post('/watermarks/', {'name': 'A', 'text': 'A'},
                                        content_type='application/json').json()['id']

        self.assertIsNone(self.client.get('/watermarks/active/').json())
        self.assertTrue(self.client.post(f'/watermarks/{watermark_id}/activate/').json()['is_active'])
        self.assertEqual(self.client.get('/watermarks/active/').json()['id'], watermark_id)
        self.client.post('/watermarks/deactivate-all/')
        self.assertIsNone(self.client.get('/watermarks/active/').json())

    def test_patch_and_delete(self):
        watermark_id = self.client.post('/watermarks/', {'name': 'A', 'text': 'A'},
                                        content_type='application/json').json()['id']

        patched = self.client.patch(f'/watermarks/{watermark_id}/', {'name': 'Renamed'},
                                    content_type='application/json')
        self.assertEqual(patched.json()['name'], 'Renamed')
        self.assertEqual(self.client.delete(f'/watermarks/{watermark_id}/').status_code, 204)
        self.assertEqual(self.client.get('/watermarks/').json(), [])
