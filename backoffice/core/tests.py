import json
import logging
from types import SimpleNamespace
from unittest.mock import patch

from django import forms
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError
from django.http import HttpResponse, JsonResponse
from django.test import RequestFactory, SimpleTestCase, TestCase

from activity.models import ActivityLog
from core import views as core_views
from core.exceptions import BadRequest, Conflict, NotFound
from core.http import StringListField, api_view, parse_int, request_data, validate
from core.logging_formatters import MASK, StructuredJSONFormatter
from core.logging_utils import AppLogger
from core.middleware import (
    LoggingMiddleware,
    RequestContextFilter,
    _request_context,
    get_client_ip,
    get_request_context,
)
from core.shortcuts import get_object_or_not_found, parse_uuid


class AppLoggerTests(SimpleTestCase):
    def setUp(self):
        self.logger = AppLogger('core.tests')
        self.user = SimpleNamespace(email='user@example.com', pk='u-1')

    def test_info_logs_formatted_message_with_user_and_extra(self):
        extra = {'ip': '127.0.0.1', 'action': 'view'}
        with self.assertLogs('core.tests', level='INFO') as captured:
            self.logger.info('Test message', user=self.user, extra_data=extra)
        self.assertEqual(len(captured.output), 1)
        logged_message = captured.output[0]
        self.assertIn('[User: user@example.com] Test message', logged_message)
        self.assertIn('ip: 127.0.0.1', logged_message)
        self.assertIn('action: view', logged_message)

    def test_context_is_attached_to_record(self):
        with self.assertLogs('core.tests', level='INFO') as captured:
            self.logger.info('With context', user=self.user, extra_data={'entry_id': 'e-1'})
        record = captured.records[0]
        self.assertEqual(record.context['user_pk'], 'u-1')
        self.assertEqual(record.context['entry_id'], 'e-1')

    def test_security_event_uses_security_logger(self):
        with self.assertLogs('django.security', level='WARNING') as captured:
            self.logger.security_event('Suspicious activity', user=self.user)
        self.assertEqual(len(captured.output), 1)
        self.assertIn('SECURITY EVENT: Suspicious activity', captured.output[0])

    def test_critical_logs_to_alerts_logger(self):
        with self.assertLogs('alerts', level='ERROR') as alerts_log, self.assertLogs(
            'core.tests', level='CRITICAL'
        ) as core_log:
            self.logger.critical('Critical failure detected')
        self.assertTrue(any('CRITICAL: Critical failure detected' in entry for entry in alerts_log.output))
        self.assertTrue(any('Critical failure detected' in entry for entry in core_log.output))

    def test_encryption_event_logs_success_and_failure(self):
        with self.assertLogs('core.tests', level='INFO') as success_log:
            self.logger.encryption_event('Key rotation complete', user=self.user, success=True)
        self.assertTrue(any('ENCRYPTION SUCCESS: Key rotation complete' in entry for entry in success_log.output))

        with self.assertLogs('core.tests', level='ERROR') as failure_log:
            self.logger.encryption_event('Key rotation failed', user=self.user, success=False)
        self.assertTrue(any('ENCRYPTION FAILURE: Key rotation failed' in entry for entry in failure_log.output))

    def test_upstream_failure_names_the_service(self):
        with self.assertLogs('core.tests', level='ERROR') as captured:
            self.logger.upstream_failure('s3', 'put failed', extra_data={'key': 'a.png'}, exc_info=False)
        self.assertIn('UPSTREAM FAILURE: put failed', captured.output[0])
        self.assertEqual(captured.records[0].context['service'], 's3')

    def test_user_activity_includes_email_and_action(self):
        with self.assertLogs('core.tests', level='INFO') as captured:
            self.logger.user_activity('login', self.user, details='from office')
        entry = captured.output[0]
        self.assertIn('User user@example.com performed action: login - from office', entry)


class StructuredJSONFormatterTests(SimpleTestCase):
    def test_formats_request_attributes_and_context(self):
        record = logging.LogRecord('vault', logging.INFO, __file__, 10, 'hello', (), None)
        record.request_id = 'req-9'
        record.user_id = 'u-1'
        record.ip = '-'
        record.context = {'entry_id': 'e-1', 'user_id': 'other'}

        payload = json.loads(StructuredJSONFormatter().format(record))

        self.assertEqual(payload['message'], 'hello')
        self.assertEqual(payload['logger'], 'vault')
        self.assertEqual(payload['request'], {'request_id': 'req-9', 'user_id': 'u-1'})
        self.assertEqual(payload['context'], {'entry_id': 'e-1', 'user_id': 'other'})
        self.assertNotIn('exception', payload)

    def test_masks_secret_context_values(self):
        record = logging.LogRecord('vault', logging.INFO, __file__, 10, 'hello', (), None)
        record.context = {'password': 'hunter2', 'nested': {'api_token': 'abc', 'site': 'x'}, 'entry_id': 'e-1'}

        payload = json.loads(StructuredJSONFormatter().format(record))

        self.assertEqual(payload['context'], {
            'password': MASK, 'nested': {'api_token': MASK, 'site': 'x'}, 'entry_id': 'e-1',
        })

    def test_app_logger_masks_secrets_in_message(self):
        with self.assertLogs('core.tests', level='INFO') as captured:
            AppLogger('core.tests').info('Entry saved', extra_data={'password': 'hunter2'})

        self.assertNotIn('hunter2', captured.output[0])
        self.assertEqual(captured.records[0].context['password'], MASK)


class MiddlewareTests(SimpleTestCase):
    def test_get_client_ip_prefers_forwarded_header(self):
        request = SimpleNamespace(META={
            'HTTP_X_FORWARDED_FOR': '203.0.113.10, 10.0.0.1',
            'HTTP_X_REAL_IP': '198.51.100.1',
        })
        self.assertEqual(get_client_ip(request), '203.0.113.10')

    def test_get_client_ip_uses_real_ip_before_socket(self):
        request = SimpleNamespace(META={'HTTP_X_REAL_IP': '198.51.100.1', 'REMOTE_ADDR': '10.0.0.2'})
        self.assertEqual(get_client_ip(request), '198.51.100.1')

    def test_get_client_ip_strips_ipv6_mapped_prefix(self):
        request = SimpleNamespace(META={'REMOTE_ADDR': '::ffff:192.168.1.1'})
        self.assertEqual(get_client_ip(request), '192.168.1.1')

    def test_get_client_ip_skips_unknown_entries(self):
        request = SimpleNamespace(
            META={'HTTP_X_FORWARDED_FOR': 'unknown, 203.0.113.1', 'REMOTE_ADDR': '198.51.100.5'}
        )
        self.assertEqual(get_client_ip(request), '203.0.113.1')

    def test_get_client_ip_reports_unknown(self):
        self.assertEqual(get_client_ip(SimpleNamespace(META={})), 'unknown')

    def test_request_context_filter_adds_context_information(self):
        token = _request_context.set(
            {
                'user_id': '42',
                'ip': '192.0.2.55',
                'request_id': 'req-1',
                'method': 'GET',
                'path': '/test/',
            }
        )
        try:
            record = logging.LogRecord('test', logging.INFO, __file__, 10, 'msg', (), None)
            RequestContextFilter().filter(record)
            self.assertEqual(record.user_id, '42')
            self.assertEqual(record.ip, '192.0.2.55')
            self.assertEqual(record.request_id, 'req-1')
            self.assertEqual(record.http_method, 'GET')
            self.assertEqual(record.path, '/test/')
        finally:
            _request_context.reset(token)

    def test_logging_middleware_populates_and_cleans_context(self):
        factory = RequestFactory()
        request = factory.get('/passwords/', HTTP_X_FORWARDED_FOR='198.51.100.7')
        request.user = SimpleNamespace(is_authenticated=True, pk='7')

        captured_state = {}

        def get_response(request):
            captured_state['context'] = get_request_context().copy()
            return HttpResponse('ok')

        response = LoggingMiddleware(get_response)(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(request.request_id, response.headers['X-Request-ID'])
        self.assertEqual(captured_state['context']['request_id'], response.headers['X-Request-ID'])
        self.assertEqual(captured_state['context']['user_id'], '7')
        self.assertEqual(captured_state['context']['ip'], '198.51.100.7')
        self.assertEqual(captured_state['context']['method'], 'GET')
        self.assertEqual(captured_state['context']['path'], '/passwords/')
        self.assertEqual(get_request_context(), {})

    def test_logging_middleware_keeps_incoming_request_id(self):
        request = RequestFactory().get('/health/', HTTP_X_REQUEST_ID='abc123')
        request.user = AnonymousUser()

        response = LoggingMiddleware(lambda req: HttpResponse('ok'))(request)

        self.assertEqual(response.headers['X-Request-ID'], 'abc123')


@api_view(['GET', 'POST'])
def _protected(request):
    if request.GET.get('fail') == 'conflict':
        raise Conflict('Already exists')
    return JsonResponse({'ok': True})


@api_view(['GET'], permission='vault.use_password_manager')
def _permissioned(request):
    return JsonResponse({'ok': True})


class ApiViewTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.user = SimpleNamespace(is_authenticated=True, pk='u-1', email='a@example.com',
                                    has_perm=lambda perm: False)

    def test_rejects_other_methods_with_allow_header(self):
        request = self.factory.delete('/x/')
        request.user = self.user
        response = _protected(request)
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response['Allow'], 'GET, POST')

    def test_requires_authentication(self):
        request = self.factory.get('/x/')
        request.user = AnonymousUser()
        response = _protected(request)
        self.assertEqual(response.status_code, 401)
        self.assertIn('detail', json.loads(response.content))

    def test_maps_service_errors_to_json(self):
        request = self.factory.get('/x/', {'fail': 'conflict'})
        request.user = self.user
        response = _protected(request)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(json.loads(response.content), {'detail': 'Already exists'})

    def test_permission_denied_is_logged_and_forbidden(self):
        request = self.factory.get('/x/')
        request.user = self.user
        with patch('core.http.security_logger') as mock_logger:
            response = _permissioned(request)
        self.assertEqual(response.status_code, 403)
        mock_logger.security_event.assert_called_once()


class _SampleForm(forms.Form):
    title = forms.CharField()
    note = forms.CharField(required=False)
    ids = StringListField(required=False)


class RequestHelpersTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_request_data_reads_json_object(self):
        request = self.factory.post('/x/', data=json.dumps({'a': 1}), content_type='application/json')
        self.assertEqual(request_data(request), {'a': 1})

    def test_request_data_rejects_invalid_json(self):
        request = self.factory.post('/x/', data='{nope', content_type='application/json')
        with self.assertRaises(BadRequest):
            request_data(request)

    def test_request_data_rejects_non_object_json(self):
        request = self.factory.post('/x/', data='[1, 2]', content_type='application/json')
        with self.assertRaises(BadRequest):
            request_data(request)

    def test_request_data_reads_form_fields(self):
        request = self.factory.post('/x/', {'title': 'Router'})
        self.assertEqual(request_data(request), {'title': 'Router'})

    def test_validate_reports_field_errors(self):
        with self.assertRaises(BadRequest) as ctx:
            validate(_SampleForm, {'note': 'x'})
        self.assertIn('title', ctx.exception.errors)

    def test_validate_partial_only_returns_sent_fields(self):
        self.assertEqual(validate(_SampleForm, {'note': 'x'}, partial=True), {'note': 'x'})

    def test_string_list_field_deduplicates(self):
        cleaned = validate(_SampleForm, {'title': 't', 'ids': ['u2', 'u2', 3, ' u4 ']})
        self.assertEqual(cleaned['ids'], ['u2', '3', 'u4'])

    def test_string_list_field_accepts_comma_separated(self):
        cleaned = validate(_SampleForm, {'title': 't', 'ids': 'a, b,a'})
        self.assertEqual(cleaned['ids'], ['a', 'b'])

    def test_string_list_field_rejects_objects(self):
        with self.assertRaises(BadRequest):
            validate(_SampleForm, {'title': 't', 'ids': [{'id': 1}]})

    def test_parse_int(self):
        self.assertEqual(parse_int(None, 'skip', default=0), 0)
        self.assertEqual(parse_int('5', 'skip'), 5)
        with self.assertRaises(BadRequest):
            parse_int('five', 'skip')
        with self.assertRaises(BadRequest):
            parse_int('-1', 'skip')

    def test_parse_uuid(self):
        self.assertIsNone(parse_uuid('not-a-uuid'))
        self.assertIsNone(parse_uuid(None))
        self.assertEqual(str(parse_uuid('12345678-1234-5678-1234-567812345678')),
                         '12345678-1234-5678-1234-567812345678')


class HealthViewTests(TestCase):
    def test_health_is_public(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'status': 'ok', 'database': 'ok'})
        self.assertIn('X-Request-ID', response.headers)

    def test_health_reports_database_failure(self):
        with patch('core.views.connection') as mock_connection, patch.object(core_views, 'logger') as mock_logger:
            mock_connection.cursor.side_effect = DatabaseError('down')
            response = self.client.get('/health/')

        self.assertEqual(response.status_code, 503)
        mock_logger.critical.assert_called_once()


class ShortcutsTests(SimpleTestCase):
    def test_malformed_id_is_not_found_without_querying(self):
        with self.assertRaises(NotFound):
            get_object_or_not_found(ActivityLog, 'not-a-uuid', 'Missing')
