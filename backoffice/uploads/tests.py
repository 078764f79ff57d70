import io
from unittest.mock import MagicMock, patch

import requests
from botocore.exceptions import ClientError
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from PIL import Image

from uploads import storage
from uploads.storage import BlobStoreError, S3BlobStore, key_from_url, reset_blob_store

User = get_user_model()


def make_image(size=(3000, 1500), fmt='PNG', mode='RGBA'):
    buffer = io.BytesIO()
    Image.new(mode, size, (200, 30, 30, 255) if mode == 'RGBA' else (200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


def image_size(data):
    with Image.open(io.BytesIO(data)) as image:
        return image.format, image.size


class S3BlobStoreTests(SimpleTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.store = S3BlobStore('listings', 'me-central-1', self.client)

    def test_store_uploads_public_object_and_returns_url(self):
        url = self.store.store(b'%PDF-1.4', 'application/pdf', 'noc-1.pdf')

        kwargs = self.client.put_object.call_args.kwargs
        self.assertEqual(kwargs['Bucket'], 'listings')
        self.assertEqual(kwargs['ACL'], 'public-read')
        self.assertEqual(kwargs['ContentType'], 'application/pdf')
        self.assertTrue(kwargs['Key'].endswith('.pdf'))
        self.assertEqual(url, f"https://listings.s3.me-central-1.amazonaws.com/{kwargs['Key']}")

    def test_images_are_shrunk_to_jpeg(self):
        self.store.store(make_image(), 'image/png', 'photo.png')

        kwargs = self.client.put_object.call_args.kwargs
        self.assertEqual(kwargs['ContentType'], 'image/jpeg')
        fmt, size = image_size(kwargs['Body'])
        self.assertEqual(fmt, 'JPEG')
        self.assertEqual(size, (1920, 960))

    def test_small_images_are_not_enlarged(self):
        self.store.store(make_image((400, 300), 'JPEG', 'RGB'), 'image/jpeg', 'small.jpg')
        self.assertEqual(image_size(self.client.put_object.call_args.kwargs['Body'])[1], (400, 300))

    def test_unreadable_image_is_uploaded_as_is(self):
        self.store.store(b'not really an image', 'image/png', 'broken.png')

        kwargs = self.client.put_object.call_args.kwargs
        self.assertEqual(kwargs['Body'], b'not really an image')
        self.assertEqual(kwargs['ContentType'], 'image/png')

    def test_upload_failure_returns_none(self):
        self.client.put_object.side_effect = ClientError({'Error': {'Code': 'AccessDenied'}}, 'PutObject')
        with patch.object(storage, 'logger') as mock_logger:
            self.assertIsNone(self.store.store(b'x', 'text/plain', 'a.txt'))
        mock_logger.upstream_failure.assert_called_once()

    def test_unconfigured_store_skips_uploads(self):
        store = S3BlobStore('', '', None)
        self.assertIsNone(store.store(b'x', 'text/plain', 'a.txt'))
        store.delete('https://x/y.txt')

    def test_upload_file_reads_django_upload(self):
        uploaded = SimpleUploadedFile('contract.pdf', b'%PDF', content_type='application/pdf')
        self.assertTrue(self.store.upload_file(uploaded).endswith('.pdf'))

    def test_delete_uses_last_path_segment(self):
        self.store.delete('https://listings.s3.me-central-1.amazonaws.com/abc.jpg')
        self.client.delete_object.assert_called_once_with(Bucket='listings', Key='abc.jpg')

    def test_delete_failure_is_swallowed(self):
        self.client.delete_object.side_effect = ClientError({'Error': {'Code': 'NoSuchKey'}}, 'DeleteObject')
        with patch.object(storage, 'logger'):
            self.store.delete('https://listings.s3.me-central-1.amazonaws.com/abc.jpg')

    def test_key_from_url(self):
        self.assertEqual(key_from_url('https://b.s3.r.amazonaws.com/k.png?x=1'), 'k.png')

    @patch('uploads.storage.requests.get')
    def test_fetch_raises_blob_store_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('down')
        with self.assertRaises(BlobStoreError):
            self.store.fetch('https://example.com/a.png')

    @patch('uploads.storage.requests.get')
    def test_get_optimized_image_resizes_to_width(self, mock_get):
        mock_get.return_value = MagicMock(content=make_image((1200, 600)), raise_for_status=MagicMock())

        data = self.store.get_optimized_image('https://example.com/a.png', width=300, quality=20)

        self.assertEqual(image_size(data), ('JPEG', (300, 150)))

    @patch('uploads.storage.requests.get')
    def test_get_optimized_image_raises_on_garbage(self, mock_get):
        mock_get.return_value = MagicMock(content=b'garbage', raise_for_status=MagicMock())
        with patch.object(storage, 'logger'):
            with self.assertRaises(BlobStoreError):
                self.store.get_optimized_image('https://example.com/a.png')


class BlobStoreSettingsTests(SimpleTestCase):
    def tearDown(self):
        reset_blob_store()

    @override_settings(AWS_REGION='', AWS_ACCESS_KEY_ID='', AWS_SECRET_ACCESS_KEY='', AWS_BUCKET_NAME='')
    def test_missing_credentials_disable_store(self):
        reset_blob_store()
        self.assertFalse(storage.get_blob_store().is_configured)

    @override_settings(AWS_REGION='me-central-1', AWS_ACCESS_KEY_ID='id', AWS_SECRET_ACCESS_KEY='secret',
                       AWS_BUCKET_NAME='listings')
    def test_configured_store_builds_s3_client(self):
        reset_blob_store()
        with patch('uploads.storage.boto3.client') as mock_client:
            store = storage.get_blob_store()
        mock_client.assert_called_once_with(
            's3', region_name='me-central-1', aws_access_key_id='id', aws_secret_access_key='secret'
        )
        self.assertTrue(store.is_configured)
        self.assertIs(storage.get_blob_store(), store)


class UploadViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='media@example.com', password='x')
        self.client.force_login(self.user)
        self.store = MagicMock()
        patcher = patch('uploads.views.get_blob_store', return_value=self.store)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_upload_requires_file(self):
        response = self.client.post('/upload/', {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'No file uploaded')

    def test_upload_returns_url(self):
        self.store.upload_file.return_value = 'https://b.s3.r.amazonaws.com/k.png'

        response = self.client.post('/upload/', {'file': SimpleUploadedFile('k.png', b'data', 'image/png')})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {'url': 'https://b.s3.r.amazonaws.com/k.png'})

    def test_upload_failure_is_bad_request(self):
        self.store.upload_file.return_value = None
        response = self.client.post('/upload/', {'file': SimpleUploadedFile('k.png', b'data', 'image/png')})
        self.assertEqual(response.json()['detail'], 'File upload failed')

    def test_delete_requires_url(self):
        response = self.client.delete('/upload/delete/', {}, content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_delete_calls_store(self):
        response = self.client.delete('/upload/delete/', {'url': 'https://b/k.png'}, content_type='application/json')
        self.assertEqual(response.status_code, 200)
        self.store.delete.assert_called_once_with('https://b/k.png')

    def test_optimize_returns_cacheable_jpeg(self):
        self.store.get_optimized_image.return_value = b'jpeg-bytes'

        response = self.client.get('/upload/optimize/', {'url': 'https://b/k.png', 'w': '200'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/jpeg')
        self.assertEqual(response['Cache-Control'], 'public, max-age=31536000')
        self.store.get_optimized_image.assert_called_once_with('https://b/k.png', 200, 20)

    def test_optimize_falls_back_to_redirect(self):
        self.store.get_optimized_image.side_effect = BlobStoreError('nope')

        response = self.client.get('/upload/optimize/', {'url': 'https://b/k.png'})

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], 'https://b/k.png')
