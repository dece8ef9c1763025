import pytest
import io
import json
from datetime import date, timedelta

from app.api.barber.profile import normalize_cashapp_tag
from conftest import login, make_barber


@pytest.mark.barbers
class TestBarberAvailability:

    def test_get_availability_is_ordered(self, client, barber_headers):
        response = client.get('/api/barber/availability', headers=barber_headers)

        assert response.status_code == 200
        rows = json.loads(response.data)['availability']
        assert [r['day_of_week'] for r in rows][0] == 'MONDAY'
        assert len(rows) == 7
        sunday = rows[-1]
        assert sunday['day_of_week'] == 'SUNDAY'
        assert sunday['is_available'] is False
        assert rows[0]['start_time'] == '09:00'
        assert rows[0]['end_time'] == '18:00'

    def test_update_availability(self, client, barber_headers):
        response = client.post(
            '/api/barber/availability',
            data=json.dumps({'availability': [
                {'day_of_week': 'monday', 'start_time': '10:00 AM', 'end_time': '4:30 PM', 'is_available': True},
                {'day_of_week': 'SUNDAY', 'start_time': '10:00', 'end_time': '14:00', 'is_available': True},
            ]}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 200
        rows = {r['day_of_week']: r for r in json.loads(response.data)['availability']}
        assert rows['MONDAY']['start_time'] == '10:00'
        assert rows['MONDAY']['end_time'] == '16:30'
        assert rows['SUNDAY']['is_available'] is True
        assert len(rows) == 7

    def test_update_availability_rejects_bad_range(self, client, barber_headers):
        response = client.post(
            '/api/barber/availability',
            data=json.dumps({'availability': [
                {'day_of_week': 'MONDAY', 'start_time': '18:00', 'end_time': '09:00'},
            ]}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_update_availability_rejects_bad_day(self, client, barber_headers):
        response = client.post(
            '/api/barber/availability',
            data=json.dumps({'availability': [
                {'day_of_week': 'FUNDAY', 'start_time': '09:00', 'end_time': '10:00'},
            ]}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_update_availability_requires_list(self, client, barber_headers):
        response = client.post(
            '/api/barber/availability',
            data=json.dumps({'availability': 'MONDAY'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_client_forbidden(self, client, auth_headers):
        response = client.get('/api/barber/availability', headers=auth_headers)

        assert response.status_code == 403


@pytest.mark.barbers
class TestBarberDaysOff:

    def _add(self, client, headers, day, reason='Vacation'):
        return client.post(
            '/api/barber/days-off',
            data=json.dumps({'date': day.isoformat(), 'reason': reason}),
            content_type='application/json',
            headers=headers
        )

    def test_add_and_list_days_off(self, client, barber_headers):
        later = date.today() + timedelta(days=10)
        sooner = date.today() + timedelta(days=5)
        assert self._add(client, barber_headers, later).status_code == 201
        assert self._add(client, barber_headers, sooner).status_code == 201

        response = client.get('/api/barber/days-off', headers=barber_headers)

        data = json.loads(response.data)
        assert [d['date'] for d in data] == [sooner.isoformat(), later.isoformat()]

    def test_past_days_off_are_hidden(self, client, barber_headers):
        self._add(client, barber_headers, date.today() - timedelta(days=3))

        response = client.get('/api/barber/days-off', headers=barber_headers)

        assert json.loads(response.data) == []

    def test_duplicate_day_off(self, client, barber_headers):
        day = date.today() + timedelta(days=4)
        self._add(client, barber_headers, day)

        response = self._add(client, barber_headers, day)

        assert response.status_code == 409

    def test_day_off_requires_date(self, client, barber_headers):
        response = client.post(
            '/api/barber/days-off',
            data=json.dumps({'reason': 'Vacation'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_delete_day_off(self, client, barber_headers):
        created = self._add(client, barber_headers, date.today() + timedelta(days=6))
        day_off_id = json.loads(created.data)['day_off']['id']

        response = client.delete(f'/api/barber/days-off?id={day_off_id}', headers=barber_headers)

        assert response.status_code == 200
        assert json.loads(client.get('/api/barber/days-off', headers=barber_headers).data) == []

    def test_delete_day_off_errors(self, client, barber_headers, db_session):
        created = self._add(client, barber_headers, date.today() + timedelta(days=6))
        day_off_id = json.loads(created.data)['day_off']['id']

        make_barber(db_session, 'Second Barber', 'second@example.com')
        other_headers = login(client, 'second@example.com')

        assert client.delete('/api/barber/days-off', headers=barber_headers).status_code == 400
        assert client.delete('/api/barber/days-off?id=9999', headers=barber_headers).status_code == 404
        assert client.delete(f'/api/barber/days-off?id={day_off_id}', headers=other_headers).status_code == 403


@pytest.mark.barbers
class TestBarberProfile:

    def test_get_profile(self, client, barber_headers, sample_barber):
        response = client.get('/api/barber/profile', headers=barber_headers)

        assert response.status_code == 200
        assert json.loads(response.data)['id'] == sample_barber.id

    def test_update_profile_payment_handles(self, client, barber_headers):
        response = client.put(
            '/api/barber/profile',
            data=json.dumps({
                'bio': 'Fades and beards',
                'zelle_email': ' pay@barber.com ',
                'zelle_phone': '(555) 123-4567',
                'cashapp_tag': 'https://cash.app/$fadeking',
            }),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 200
        barber = json.loads(response.data)['barber']
        assert barber['bio'] == 'Fades and beards'
        assert barber['zelle_email'] == 'pay@barber.com'
        assert barber['zelle_phone'] == '5551234567'
        assert barber['cashapp_tag'] == '$fadeking'

    def test_invalid_zelle_email(self, client, barber_headers):
        response = client.put(
            '/api/barber/profile',
            data=json.dumps({'zelle_email': 'not-an-email'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_short_zelle_phone(self, client, barber_headers):
        response = client.put(
            '/api/barber/profile',
            data=json.dumps({'zelle_phone': '555-1234'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    @pytest.mark.parametrize('raw,expected', [
        ('$fadeking', '$fadeking'),
        ('@fadeking', '$fadeking'),
        ('fade king', '$fadeking'),
        ('   ', None),
    ])
    def test_normalize_cashapp_tag(self, raw, expected):
        assert normalize_cashapp_tag(raw) == expected

    def test_upload_profile_image(self, client, barber_headers, monkeypatch):
        monkeypatch.setattr(
            'app.api.barber.profile.store_upload',
            lambda file, folder: f'https://cdn.example.com/{folder}/{file.filename}'
        )

        response = client.post(
            '/api/barber/profile/image',
            data={'image': (io.BytesIO(b'fake-image'), 'me.jpg', 'image/jpeg')},
            content_type='multipart/form-data',
            headers=barber_headers
        )

        assert response.status_code == 200
        assert json.loads(response.data)['image_url'].endswith('/me.jpg')

    def test_upload_profile_image_wrong_type(self, client, barber_headers):
        response = client.post(
            '/api/barber/profile/image',
            data={'image': (io.BytesIO(b'%PDF'), 'cv.pdf', 'application/pdf')},
            content_type='multipart/form-data',
            headers=barber_headers
        )

        assert response.status_code == 400


@pytest.mark.barbers
class TestManualPaymentsAndMedia:

    def test_manual_payment(self, client, barber_headers):
        response = client.post(
            '/api/barber/manual-payments',
            data=json.dumps({'amount': 40, 'payment_method': 'ZELLE', 'client_name': 'Walk-in'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 201
        listed = json.loads(client.get('/api/barber/manual-payments', headers=barber_headers).data)
        assert len(listed) == 1
        assert listed[0]['amount'] == 40.0

    @pytest.mark.parametrize('body', [
        {'amount': 0, 'payment_method': 'CASH'},
        {'amount': 'abc', 'payment_method': 'CASH'},
        {'amount': 20},
    ])
    def test_manual_payment_validation(self, client, barber_headers, body):
        response = client.post(
            '/api/barber/manual-payments',
            data=json.dumps(body),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_media_upload_and_public_listing(self, client, barber_headers, sample_barber, monkeypatch):
        monkeypatch.setattr(
            'app.api.barber.profile.store_upload',
            lambda file, folder: f'https://cdn.example.com/{folder}/{file.filename}'
        )

        response = client.post(
            '/api/barber/media',
            data={
                'file': (io.BytesIO(b'fake-image'), 'fade.jpg', 'image/jpeg'),
                'media_type': 'photo',
                'title': 'Skin fade',
            },
            content_type='multipart/form-data',
            headers=barber_headers
        )
        assert response.status_code == 201
        media_id = json.loads(response.data)['media']['id']

        public = client.get(f'/api/barber/media?barber_id={sample_barber.id}')
        assert [m['id'] for m in json.loads(public.data)] == [media_id]

        deleted = client.delete(f'/api/barber/media/{media_id}', headers=barber_headers)
        assert deleted.status_code == 200

    def test_media_rejects_video_sent_as_photo(self, client, barber_headers):
        response = client.post(
            '/api/barber/media',
            data={
                'file': (io.BytesIO(b'fake-video'), 'clip.mp4', 'video/mp4'),
                'media_type': 'PHOTO',
            },
            content_type='multipart/form-data',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_media_listing_requires_barber_id_when_anonymous(self, client, db_session):
        response = client.get('/api/barber/media')

        assert response.status_code == 400
