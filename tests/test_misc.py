import pytest
import io
import json

from sqlalchemy import select

from app.api.employee.employee_app import sanitize
from app.models import GalleryImage, User
from app.services.email_service import email_service


def _gallery_image(db_session, title, **kwargs):
    image = GalleryImage(media_url=kwargs.pop('media_url', f'uploads/{title}.jpg'), title=title, **kwargs)
    db_session.add(image)
    db_session.commit()
    return image


@pytest.mark.utils
class TestGallery:

    def test_public_listing(self, client, db_session):
        _gallery_image(db_session, 'second', sort_order=2, gender='MALE', tags=['fade'])
        _gallery_image(db_session, 'first', sort_order=1, gender='FEMALE', tags=['color'])
        _gallery_image(db_session, 'hidden', is_active=False)

        response = client.get('/api/gallery')

        data = json.loads(response.data)
        assert [i['title'] for i in data] == ['first', 'second']
        assert data[0]['image_url'] == '/uploads/first.jpg'

    def test_filters(self, client, db_session):
        _gallery_image(db_session, 'fade', gender='MALE', tags=['fade'])
        _gallery_image(db_session, 'color', gender='FEMALE', tags=['color'])
        _gallery_image(db_session, 'hidden', is_active=False)

        by_gender = json.loads(client.get('/api/gallery?gender=FEMALE').data)
        by_tag = json.loads(client.get('/api/gallery?tag=fade').data)
        everything = json.loads(client.get('/api/gallery?include_inactive=true').data)

        assert [i['title'] for i in by_gender] == ['color']
        assert [i['title'] for i in by_tag] == ['fade']
        assert len(everything) == 3

    def test_create_and_update(self, client, admin_headers):
        created = client.post(
            '/api/gallery',
            data=json.dumps({
                'media_url': 'https://cdn.example.com/gallery/fade.jpg',
                'title': 'Skin fade',
                'tags': ['fade'],
                'order': '3',
            }),
            content_type='application/json',
            headers=admin_headers
        )
        assert created.status_code == 201
        image = json.loads(created.data)
        assert image['gender'] == 'UNISEX'
        assert image['order'] == 3

        updated = client.put(
            f'/api/gallery/{image["id"]}',
            data=json.dumps({'title': 'Low fade', 'is_active': False}),
            content_type='application/json',
            headers=admin_headers
        )
        data = json.loads(updated.data)
        assert data['title'] == 'Low fade'
        assert data['is_active'] is False

    @pytest.mark.parametrize('body', [
        {'title': 'No media'},
        {'media_url': 'uploads/a.jpg', 'title': 'Bad gender', 'gender': 'KIDS'},
        {'media_url': 'uploads/a.jpg', 'title': 'Bad tags', 'tags': 'fade'},
        {'media_url': 'uploads/a.jpg', 'title': 'Bad order', 'order': 'first'},
    ])
    def test_create_validation(self, client, admin_headers, body):
        response = client.post(
            '/api/gallery',
            data=json.dumps(body),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_delete_removes_stored_file(self, client, admin_headers, db_session, monkeypatch):
        removed = []
        monkeypatch.setattr('app.api.gallery.gallery.delete_file_from_s3', removed.append)
        image = _gallery_image(db_session, 'cut', media_url='https://cdn.example.com/gallery/cut.jpg')

        response = client.delete(f'/api/gallery/{image.id}', headers=admin_headers)

        assert json.loads(response.data) == {'success': True}
        assert removed == ['https://cdn.example.com/gallery/cut.jpg']
        assert db_session.scalar(select(GalleryImage.id)) is None

    def test_upload_image(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(
            'app.api.gallery.gallery.store_upload',
            lambda file, folder: f'https://cdn.example.com/{folder}/{file.filename}'
        )

        response = client.post(
            '/api/gallery/upload-image',
            data={'file': (io.BytesIO(b'fake-image'), 'shop.png', 'image/png')},
            content_type='multipart/form-data',
            headers=admin_headers
        )

        assert response.status_code == 201
        assert json.loads(response.data)['media_url'] == 'https://cdn.example.com/gallery/shop.png'

    def test_gallery_management_requires_admin(self, client, auth_headers):
        response = client.post(
            '/api/gallery',
            data=json.dumps({'media_url': 'uploads/a.jpg', 'title': 'Mine'}),
            content_type='application/json',
            headers=auth_headers
        )

        assert response.status_code == 403


@pytest.mark.auth
class TestUserProfile:

    def test_get_profile(self, client, auth_headers):
        response = client.get('/api/user/profile', headers=auth_headers)

        data = json.loads(response.data)
        assert data['email'] == 'client@example.com'
        assert data['barber'] is None

    def test_barber_profile_includes_payment_handles(self, client, barber_headers):
        response = client.get('/api/user/profile', headers=barber_headers)

        assert 'cashapp_tag' in json.loads(response.data)['barber']

    def test_update_profile(self, client, auth_headers):
        response = client.put(
            '/api/user/profile',
            data=json.dumps({'name': '  New Name ', 'email': 'NEW@example.com', 'phone': '  ', 'gender': 'FEMALE'}),
            content_type='application/json',
            headers=auth_headers
        )

        user = json.loads(response.data)['user']
        assert user['name'] == 'New Name'
        assert user['email'] == 'new@example.com'
        assert user['phone'] is None
        assert user['gender'] == 'FEMALE'

    @pytest.mark.parametrize('body', [
        {},
        {'name': '   '},
        {'email': 'not-an-email'},
        {'email': 'barber@example.com'},
        {'gender': 'ROBOT'},
    ])
    def test_update_profile_validation(self, client, auth_headers, sample_barber, body):
        response = client.put(
            '/api/user/profile',
            data=json.dumps(body),
            content_type='application/json',
            headers=auth_headers
        )

        assert response.status_code == 400

    def test_upload_profile_image(self, client, auth_headers, sample_client, db_session, monkeypatch):
        monkeypatch.setattr(
            'app.api.customer.details.store_upload',
            lambda file, folder: f'https://cdn.example.com/{folder}/{file.filename}'
        )

        response = client.post(
            '/api/user/profile/image',
            data={'image': (io.BytesIO(b'fake-image'), 'me.png', 'image/png')},
            content_type='multipart/form-data',
            headers=auth_headers
        )

        assert response.status_code == 200
        expected = f'https://cdn.example.com/profiles/{sample_client.id}/me.png'
        assert json.loads(response.data)['image_url'] == expected
        assert db_session.get(User, sample_client.id).image == expected

    def test_accept_legal(self, client, auth_headers, sample_client, db_session):
        default = client.post('/api/legal/accept', headers=auth_headers)
        explicit = client.post(
            '/api/legal/accept',
            data=json.dumps({'version': ' 2.1 '}),
            content_type='application/json',
            headers=auth_headers
        )

        assert json.loads(default.data) == {'ok': True, 'version': '1.0'}
        assert json.loads(explicit.data) == {'ok': True, 'version': '2.1'}
        user = db_session.get(User, sample_client.id)
        assert user.terms_accepted is True
        assert user.legal_accepted_version == '2.1'


@pytest.mark.communication
class TestJobApplication:

    APPLICATION = {
        'full_name': 'Jordan Fade',
        'email': 'jordan@example.com',
        'phone': '555-123-4567',
        'role': 'Barber',
        'years_experience': '5',
        'message': 'Line one\nLine two',
    }

    def _apply(self, client, body):
        return client.post('/api/job-application', data=json.dumps(body), content_type='application/json')

    def test_application_is_emailed_to_owner(self, client, monkeypatch):
        sent = []
        monkeypatch.setattr(
            email_service, 'send_job_application',
            lambda to_email, application: sent.append((to_email, application)) or {'success': True}
        )

        response = self._apply(client, self.APPLICATION)

        assert json.loads(response.data) == {'ok': True}
        to_email, application = sent[0]
        assert to_email == 'owner@example.com'
        assert application['role'] == 'barber'
        assert application['message'] == 'Line one Line two'

    def test_honeypot_drops_request(self, client, monkeypatch):
        sent = []
        monkeypatch.setattr(email_service, 'send_job_application', lambda *args: sent.append(args))

        response = self._apply(client, {**self.APPLICATION, 'company': 'Spam Inc'})

        assert json.loads(response.data) == {'ok': True}
        assert sent == []

    @pytest.mark.parametrize('field,value', [
        ('full_name', 'J'),
        ('email', 'jordan'),
        ('phone', '555'),
        ('role', 'manager'),
    ])
    def test_validation(self, client, field, value):
        response = self._apply(client, {**self.APPLICATION, field: value})

        assert response.status_code == 400

    def test_email_failure(self, client):
        response = self._apply(client, self.APPLICATION)

        assert response.status_code == 502

    def test_sanitize(self):
        assert sanitize('  a\tb\x00c  ', 10) == 'a b c'
        assert sanitize('abcdef', 3) == 'abc'
        assert sanitize(42, 10) == ''
