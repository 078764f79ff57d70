from django.contrib.auth import get_user_model
from django.test import TestCase

from core.exceptions import NotFound
from properties import services
from properties.models import PropertyDraft

User = get_user_model()


class DraftServiceTests(TestCase):
    def test_create_pops_identifiers_from_data(self):
        draft = services.create_or_update(
            {'id': None, 'original_property_id': 'prop-7', 'title': 'Marina View', 'price': 1200000}, 'u1'
        )

        self.assertEqual(draft.user_id, 'u1')
        self.assertEqual(draft.original_property_id, 'prop-7')
        self.assertEqual(draft.data, {'title': 'Marina View', 'price': 1200000})

    def test_existing_id_updates_data(self):
        draft = services.create_or_update({'title': 'First'}, 'u1')

        updated = services.create_or_update({'id': str(draft.pk), 'title': 'Second'}, 'u1')

        self.assertEqual(updated.pk, draft.pk)
        self.assertEqual(PropertyDraft.objects.get(pk=draft.pk).data, {'title': 'Second'})
        self.assertEqual(PropertyDraft.objects.count(), 1)

    def test_unknown_id_creates_new_draft(self):
        services.create_or_update({'id': 'does-not-exist', 'title': 'x'}, 'u1')
        self.assertEqual(PropertyDraft.objects.count(), 1)

    def test_find_all_filters_by_user(self):
        services.create_or_update({'title': 'mine'}, 'u1')
        services.create_or_update({'title': 'theirs'}, 'u2')

        self.assertEqual([draft.data['title'] for draft in services.find_all('u1')], ['mine'])
        self.assertEqual(len(services.find_all()), 2)

    def test_find_one_and_delete_missing(self):
        with self.assertRaises(NotFound):
            services.find_one('12345678-1234-5678-1234-567812345678')
        with self.assertRaises(NotFound):
            services.delete('nope')

    def test_other_users_draft_is_not_found_and_not_overwritten(self):
        draft = services.create_or_update({'title': 'mine'}, 'u1')

        with self.assertRaises(NotFound):
            services.find_one(draft.pk, 'u2')
        with self.assertRaises(NotFound):
            services.delete(draft.pk, 'u2')
        copy = services.create_or_update({'id': str(draft.pk), 'title': 'Hijacked'}, 'u2')

        self.assertNotEqual(copy.pk, draft.pk)
        self.assertEqual(copy.user_id, 'u2')
        self.assertEqual(PropertyDraft.objects.get(pk=draft.pk).data, {'title': 'mine'})
        self.assertEqual(services.find_one(draft.pk, 'u1').pk, draft.pk)


class DraftViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='agent@example.com', password='x')
        self.client.force_login(self.user)

    def test_save_list_and_delete(self):
        saved = self.client.post('/properties/drafts/', {'title': 'Villa'}, content_type='application/json')
        self.assertEqual(saved.status_code, 200)
        draft_id = saved.json()['id']
        self.assertEqual(saved.json()['user_id'], str(self.user.pk))

        listing = self.client.get('/properties/drafts/').json()
        self.assertEqual([item['id'] for item in listing], [draft_id])
        self.assertEqual(self.client.get(f'/properties/drafts/{draft_id}/').json()['data'], {'title': 'Villa'})

        self.assertEqual(self.client.delete(f'/properties/drafts/{draft_id}/').status_code, 204)
        self.assertEqual(self.client.get(f'/properties/drafts/{draft_id}/').status_code, 404)

    def test_other_users_drafts_are_not_listed(self):
        services.create_or_update({'title': 'theirs'}, 'someone-else')
        self.assertEqual(self.client.get('/properties/drafts/').json(), [])

    def test_second_user_cannot_read_overwrite_or_delete_draft(self):
        draft_id = self.client.post(
            '/properties/drafts/', {'title': 'Villa'}, content_type='application/json'
        ).json()['id']
        other = User.objects.create_user(email='other@example.com', password='x')
        self.client.force_login(other)

        self.assertEqual(self.client.get(f'/properties/drafts/{draft_id}/').status_code, 404)
        overwrite = self.client.post(
            '/properties/drafts/', {'id': draft_id, 'title': 'Hijacked'}, content_type='application/json'
        )
        self.assertEqual(overwrite.status_code, 200)
        self.assertNotEqual(overwrite.json()['id'], draft_id)
        self.assertEqual(self.client.delete(f'/properties/drafts/{draft_id}/').status_code, 404)

        self.client.force_login(self.user)
        self.assertEqual(self.client.get(f'/properties/drafts/{draft_id}/').json()['data'], {'title': 'Villa'})
