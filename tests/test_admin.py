import pytest
import csv
import io
import json

from sqlalchemy import select

from app.api.admin.users import is_valid_e164, normalize_admin_phone
from app.models import Notification, SocialMediaClick, User
from conftest import login, make_user


@pytest.mark.admin
class TestAdminStats:

    def test_stats(self, client, admin_headers, sample_appointment, completed_appointment):
        response = client.get('/api/admin/stats', headers=admin_headers)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['total_appointments'] == 2
        assert data['completed_appointments'] == 1
        assert data['pending_appointments'] == 1
        assert data['total_clients'] == 1
        assert data['total_barbers'] == 1
        assert data['total_revenue'] == '25.00'
        assert data['average_rating'] == '0.0'
        assert len(data['recent_appointments']) == 2
        assert [c['email'] for c in data['new_clients']] == ['client@example.com']


@pytest.mark.admin
class TestAdminUsers:

    def test_list_users_admins_first(self, client, admin_headers, sample_client, completed_appointment):
        response = client.get('/api/admin/users', headers=admin_headers)

        users = json.loads(response.data)['users']
        assert users[0]['role'] == 'ADMIN'
        by_email = {u['email']: u for u in users}
        assert by_email['client@example.com']['counts'] == {'appointments': 1, 'posts': 0}
        assert by_email['barber@example.com']['barber'] is not None

    def test_create_user(self, client, admin_headers):
        response = client.post(
            '/api/admin/users',
            data=json.dumps({
                'name': 'New Stylist',
                'email': ' Stylist@Example.com ',
                'password': 'secret123',
                'role': 'STYLIST',
                'phone': '+1 (781) 367-7244',
            }),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        user = json.loads(response.data)['user']
        assert user['email'] == 'stylist@example.com'
        assert user['phone'] == '+17813677244'
        login(client, 'stylist@example.com', 'secret123')

    @pytest.mark.parametrize('overrides', [
        {'password': '123'},
        {'role': 'OWNER'},
        {'email': 'client@example.com'},
        {'phone': 'call me'},
        {'name': ''},
    ])
    def test_create_user_validation(self, client, admin_headers, sample_client, overrides):
        body = {'name': 'Someone', 'email': 'someone@example.com', 'password': 'secret123'}
        body.update(overrides)

        response = client.post(
            '/api/admin/users',
            data=json.dumps(body),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_get_user_detail(self, client, admin_headers, sample_client, completed_appointment):
        response = client.get(f'/api/admin/users/{sample_client.id}', headers=admin_headers)

        data = json.loads(response.data)['user']
        assert len(data['appointments']) == 1
        assert data['barber'] is None
        assert client.get('/api/admin/users/9999', headers=admin_headers).status_code == 404

    def test_update_user(self, client, admin_headers, sample_client):
        response = client.put(
            f'/api/admin/users/{sample_client.id}',
            data=json.dumps({'name': 'Renamed', 'phone': '', 'role': 'BARBER'}),
            content_type='application/json',
            headers=admin_headers
        )

        user = json.loads(response.data)['user']
        assert user['name'] == 'Renamed'
        assert user['phone'] is None
        assert user['role'] == 'BARBER'

    def test_only_owner_edits_other_admins(self, client, admin_headers, sample_admin, db_session):
        other = make_user(db_session, 'Second Admin', 'second.admin@example.com', role='ADMIN')
        other_headers = login(client, 'second.admin@example.com')

        blocked = client.put(
            f'/api/admin/users/{sample_admin.id}',
            data=json.dumps({'name': 'Hijacked'}),
            content_type='application/json',
            headers=other_headers
        )
        allowed = client.put(
            f'/api/admin/users/{other.id}',
            data=json.dumps({'name': 'Assistant Admin'}),
            content_type='application/json',
            headers=admin_headers
        )

        assert blocked.status_code == 403
        assert allowed.status_code == 200

    def test_delete_rules(self, client, admin_headers, sample_admin, sample_client, sample_barber, db_session):
        make_user(db_session, 'Second Admin', 'second.admin@example.com', role='ADMIN')
        other_headers = login(client, 'second.admin@example.com')

        assert client.delete(f'/api/admin/users/{sample_admin.id}', headers=admin_headers).status_code == 400
        assert client.delete(f'/api/admin/users/{sample_admin.id}', headers=other_headers).status_code == 403
        assert client.delete(f'/api/admin/users/{sample_barber.user_id}', headers=admin_headers).status_code == 400
        assert client.delete(f'/api/admin/users/{sample_client.id}', headers=admin_headers).status_code == 200
        assert db_session.scalar(select(User.id).where(User.email == 'client@example.com')) is None

    def test_export_csv(self, client, admin_headers, sample_client, db_session):
        make_user(db_session, 'Jo "JJ" Smith, Jr', 'jo@example.com')

        response = client.get('/api/admin/users/export', headers=admin_headers)

        assert response.mimetype == 'text/csv'
        assert 'attachment; filename="users_' in response.headers['Content-Disposition']
        text = response.data.decode()
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0][:4] == ['ID', 'Name', 'Email', 'Role']
        assert len(rows) == 4
        assert 'Jo "JJ" Smith, Jr' in [row[1] for row in rows]
        assert '"Jo ""JJ"" Smith, Jr"' in text
        assert '"client@example.com"' in text

    def test_cleanup_skips_barbers(self, client, admin_headers, sample_client, sample_barber, db_session):
        make_user(db_session, 'Real Person', 'real@example.com')

        response = client.post(
            '/api/admin/users/cleanup',
            data=json.dumps({}),
            content_type='application/json',
            headers=admin_headers
        )

        data = json.loads(response.data)
        assert data['deleted_count'] == 1
        assert data['skipped_count'] == 1
        remaining = sorted(db_session.scalars(select(User.email)).all())
        assert remaining == ['barber@example.com', 'owner@example.com', 'real@example.com']

    @pytest.mark.parametrize('raw,expected,valid', [
        ('+1 (781) 367-7244', '+17813677244', True),
        ('781-367-7244', '7813677244', True),
        ('0123', '0123', False),
        (None, '', False),
    ])
    def test_phone_helpers(self, raw, expected, valid):
        assert normalize_admin_phone(raw) == expected
        assert is_valid_e164(expected) is valid


@pytest.mark.admin
class TestAdminOutreach:

    def _post(self, client, headers, path, body):
        return client.post(path, data=json.dumps(body), content_type='application/json', headers=headers)

    def test_in_app_notification(self, client, admin_headers, sample_client, db_session):
        response = self._post(client, admin_headers, '/api/admin/users/notify', {
            'user_ids': [sample_client.id],
            'message': '  Shop closes early Friday  ',
            'subject': 'Heads up',
            'notification_type': 'notification',
        })

        stats = json.loads(response.data)['stats']
        assert stats == {'total_users': 1, 'emails_sent': 0, 'notifications_created': 1, 'errors': 0}
        note = db_session.scalar(select(Notification))
        assert note.title == 'Heads up'
        assert note.message == 'Shop closes early Friday'

    def test_email_failures_are_reported(self, client, admin_headers, sample_client):
        response = self._post(client, admin_headers, '/api/admin/users/notify', {
            'user_ids': [sample_client.id],
            'message': 'Hello',
        })

        data = json.loads(response.data)
        assert data['stats']['emails_sent'] == 0
        assert data['errors'] == ['Email to client@example.com failed']

    @pytest.mark.parametrize('body,status', [
        ({'user_ids': [], 'message': 'Hi'}, 400),
        ({'user_ids': [1], 'message': '   '}, 400),
        ({'user_ids': [9999], 'message': 'Hi'}, 404),
        ({'user_ids': [1], 'message': 'Hi', 'notification_type': 'pigeon'}, 400),
    ])
    def test_notify_validation(self, client, admin_headers, body, status):
        response = self._post(client, admin_headers, '/api/admin/users/notify', body)

        assert response.status_code == status

    def test_push_requires_configuration(self, client, admin_headers, sample_client, monkeypatch):
        monkeypatch.setattr('app.api.admin.users.is_web_push_configured', lambda: False)

        response = self._post(client, admin_headers, '/api/admin/users/push', {
            'user_ids': [sample_client.id], 'message': 'Hi'
        })

        assert response.status_code == 503
        assert json.loads(response.data)['requires_configuration'] is True

    def test_sms_requires_configuration(self, client, admin_headers, sample_client, monkeypatch):
        monkeypatch.setattr('app.api.admin.users.is_twilio_configured', lambda: False)

        response = self._post(client, admin_headers, '/api/admin/users/sms', {
            'user_ids': [sample_client.id], 'message': 'Hi'
        })

        assert response.status_code == 503

    def test_sms_reports_unreachable_users(self, client, admin_headers, sample_client, db_session, monkeypatch):
        sent = []
        monkeypatch.setattr('app.api.admin.users.is_twilio_configured', lambda: True)
        monkeypatch.setattr(
            'app.api.admin.users.send_sms',
            lambda to, body: sent.append(to) or {'success': True, 'sid': 'SM123'}
        )
        no_phone = make_user(db_session, 'No Phone', 'nophone@example.com')
        bad_phone = make_user(db_session, 'Bad Phone', 'badphone@example.com', phone='call-me')

        response = self._post(client, admin_headers, '/api/admin/users/sms', {
            'user_ids': [sample_client.id, no_phone.id, bad_phone.id], 'message': 'See you soon'
        })

        data = json.loads(response.data)
        assert data['stats']['sms_sent'] == 1
        assert data['stats']['users_with_no_phone'] == 1
        assert data['stats']['errors'] == 2
        assert sent == ['5551234567']


@pytest.mark.admin
class TestReports:

    def test_summary(self, client, admin_headers, sample_appointment, completed_appointment):
        response = client.get('/api/admin/reports/summary', headers=admin_headers)

        data = json.loads(response.data)
        assert data['total_appointments'] == 2
        assert data['appointments_by_status'] == {'CONFIRMED': 1, 'COMPLETED': 1}
        assert data['completion_rate'] == 50.0
        assert data['total_revenue'] == 25.0
        assert data['revenue_by_barber'] == [{'barber': 'Test Barber', 'appointments': 1, 'revenue': 25.0}]

    def test_summary_invalid_range(self, client, admin_headers):
        response = client.get('/api/admin/reports/summary?start_date=yesterday', headers=admin_headers)

        assert response.status_code == 400

    def test_excel_export(self, client, admin_headers, completed_appointment):
        response = client.get('/api/admin/reports/export', headers=admin_headers)

        assert response.status_code == 200
        assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        assert 'JBookMe_Report_' in response.headers['Content-Disposition']
        # xlsx files are zip archives
        assert response.data[:2] == b'PK'

    def test_reports_require_admin(self, client, barber_headers):
        assert client.get('/api/admin/reports/summary', headers=barber_headers).status_code == 403


@pytest.mark.admin
class TestSettingsAndVersion:

    def test_defaults_created_on_first_read(self, client, db_session):
        response = client.get('/api/settings')

        data = json.loads(response.data)
        assert data['shop_name'] == 'JBookMe'
        assert data['latitude'] == 40.7128

    def test_update_settings(self, client, admin_headers):
        response = client.put(
            '/api/settings',
            data=json.dumps({'instagram': 'https://instagram.com/jbbarbershop', 'phone': '+1 555 000 1111'}),
            content_type='application/json',
            headers=admin_headers
        )

        data = json.loads(response.data)
        assert data['instagram'] == 'https://instagram.com/jbbarbershop'
        assert data['shop_name'] == 'JBookMe'

    def test_shop_name_required(self, client, admin_headers):
        response = client.put(
            '/api/settings',
            data=json.dumps({'shop_name': ''}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_gender_image_upload(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(
            'app.api.admin_dashboard.admin_system.store_upload',
            lambda file, folder: f'https://cdn.example.com/{folder}/{file.filename}'
        )

        response = client.post(
            '/api/settings/gender-images',
            data={'file': (io.BytesIO(b'fake-image'), 'women.jpg', 'image/jpeg'), 'gender': 'FEMALE'},
            content_type='multipart/form-data',
            headers=admin_headers
        )

        data = json.loads(response.data)
        assert data['gender'] == 'female'
        assert data['settings']['female_gender_image'] == 'https://cdn.example.com/gender-images/women.jpg'

    def test_gender_image_requires_known_gender(self, client, admin_headers):
        response = client.post(
            '/api/settings/gender-images',
            data={'file': (io.BytesIO(b'fake-image'), 'kids.jpg', 'image/jpeg'), 'gender': 'kids'},
            content_type='multipart/form-data',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_version_is_not_cached(self, client):
        response = client.get('/api/version')

        assert 'version' in json.loads(response.data)
        assert 'no-store' in response.headers['Cache-Control']


@pytest.mark.admin
class TestSocialClicks:

    def test_record_and_summarize(self, client, admin_headers, auth_headers, sample_client, db_session):
        anonymous = client.post(
            '/api/social-media-clicks',
            data=json.dumps({'network': 'Instagram', 'url': 'https://instagram.com/jb'}),
            content_type='application/json'
        )
        signed_in = client.post(
            '/api/social-media-clicks',
            data=json.dumps({'network': 'instagram', 'url': 'https://instagram.com/jb'}),
            content_type='application/json',
            headers=auth_headers
        )
        client.post(
            '/api/social-media-clicks',
            data=json.dumps({'network': 'tiktok', 'url': 'https://tiktok.com/@jb'}),
            content_type='application/json',
            headers=auth_headers
        )

        assert anonymous.status_code == 201
        assert signed_in.status_code == 201
        user_ids = db_session.scalars(select(SocialMediaClick.user_id).order_by(SocialMediaClick.id)).all()
        assert user_ids == [None, sample_client.id, sample_client.id]

        stats = json.loads(client.get('/api/social-media-clicks/stats', headers=admin_headers).data)
        assert stats['total_clicks'] == 3
        assert stats['most_popular_network'] == {'network': 'instagram', 'count': 2}
        assert stats['unique_users'] == 1
        assert stats['engagement_percentage'] == 100.0
        assert stats['recent_clicks'] == 3

    def test_click_requires_network_and_url(self, client):
        response = client.post(
            '/api/social-media-clicks',
            data=json.dumps({'network': 'facebook'}),
            content_type='application/json'
        )

        assert response.status_code == 400
