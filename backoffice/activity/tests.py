from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase
from django.utils import timezone

from activity import services
from activity.models import ActivityLog
from core.exceptions import BadRequest

User = get_user_model()


class RecordActivityTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='sara@example.com', password='x', full_name='Sara Khan')

    def test_record_request_activity_uses_forwarded_ip(self):
        request = RequestFactory().post('/x/', HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1')
        request.user = self.user

        entry = services.record_request_activity(request, 'Created password entry', 'Router')

        self.assertEqual(entry.user, self.user)
        self.assertEqual(entry.ip_address, '203.0.113.9')
        self.assertEqual(entry.description, 'Router')

    def test_record_request_activity_strips_ipv6_mapped_prefix(self):
        request = RequestFactory().get('/x/', REMOTE_ADDR='::ffff:192.168.1.20')
        request.user = self.user

        entry = services.record_request_activity(request, 'Viewed')

        self.assertEqual(entry.ip_address, '192.168.1.20')

    def test_system_activity_has_no_user(self):
        entry = services.record_activity('Nightly cleanup')
        self.assertIsNone(entry.user)
        self.assertIsNone(entry.to_dict()['user'])


class SearchActivityTests(TestCase):
    def setUp(self):
        self.sara = User.objects.create_user(email='sara@example.com', password='x', full_name='Sara Khan')
        self.omar = User.objects.create_user(email='omar@brokers.ae', password='x', full_name='Omar Ali')
        now = timezone.now()
        self.old = services.record_activity('Deleted watermark', user=self.omar)
        ActivityLog.objects.filter(pk=self.old.pk).update(created_at=now - timedelta(days=10))
        self.middle = services.record_activity('Created NOC', user=self.sara)
        ActivityLog.objects.filter(pk=self.middle.pk).update(created_at=now - timedelta(days=2))
        self.recent = services.record_activity('Updated password entry', user=self.omar)

    def test_newest_first_with_total(self):
        result = services.search()
        self.assertEqual(result['total'], 3)
        self.assertEqual([item['id'] for item in result['items']],
                         [str(self.recent.pk), str(self.middle.pk), str(self.old.pk)])

    def test_skip_and_take_paginate(self):
        result = services.search(skip=1, take=1)
        self.assertEqual(result['total'], 3)
        self.assertEqual([item['id'] for item in result['items']], [str(self.middle.pk)])

    def test_search_matches_action_name_and_email_case_insensitively(self):
        self.assertEqual(services.search(search='created noc')['total'], 1)
        self.assertEqual(services.search(search='SARA')['total'], 1)
        self.assertEqual(services.search(search='brokers.AE')['total'], 2)

    def test_date_range_needs_both_bounds(self):
        start = (timezone.localdate() - timedelta(days=3)).isoformat()
        end = timezone.localdate().isoformat()

        self.assertEqual(services.search(start_date=start)['total'], 3)
        self.assertEqual(services.search(start_date=start, end_date=end)['total'], 2)

    def test_invalid_date_is_bad_request(self):
        with self.assertRaises(BadRequest):
            services.search(start_date='yesterday', end_date='today')


class ActivityViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='sara@example.com', password='x', full_name='Sara Khan')
        self.client.force_login(self.user)

    def test_post_records_for_current_user(self):
        response = self.client.post('/activity-logs/', {'action': 'Exported listing'},
                                    content_type='application/json', HTTP_X_REAL_IP='198.51.100.4')

        self.assertEqual(response.status_code, 201)
        entry = ActivityLog.objects.get()
        self.assertEqual(entry.user, self.user)
        self.assertEqual(entry.ip_address, '198.51.100.4')

    def test_get_supports_query_parameters(self):
        services.record_activity('Created NOC', user=self.user)
        services.record_activity('Deleted watermark', user=self.user)

        response = self.client.get('/activity-logs/', {'search': 'noc', 'take': '10'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['total'], 1)
        self.assertEqual(response.json()['items'][0]['user']['email'], 'sara@example.com')

    def test_invalid_pagination_is_rejected(self):
        self.assertEqual(self.client.get('/activity-logs/', {'skip': 'abc'}).status_code, 400)

    def test_requires_login(self):
        self.client.logout()
        self.assertEqual(self.client.get('/activity-logs/').status_code, 401)
