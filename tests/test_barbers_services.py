import pytest
import json

from sqlalchemy import func, select

from app.models import Appointment, Availability, Barber, Review, Service, User
from conftest import login, make_barber


@pytest.mark.barbers
class TestBarberDirectory:

    def test_list_barbers(self, client, sample_barber, sample_service, sample_client, db_session):
        db_session.add(Review(client_id=sample_client.id, barber_id=sample_barber.id, rating=4))
        db_session.add(Review(client_id=sample_client.id, barber_id=sample_barber.id, rating=5))
        db_session.commit()

        response = client.get('/api/barbers')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert len(data) == 1
        assert data[0]['user']['name'] == 'Test Barber'
        assert [s['name'] for s in data[0]['services']] == ['Classic Cut']
        assert data[0]['avg_rating'] == 4.5
        assert data[0]['total_reviews'] == 2

    def test_inactive_barbers_hidden(self, client, sample_barber, db_session):
        sample_barber.is_active = False
        db_session.commit()

        response = client.get('/api/barbers')

        assert json.loads(response.data) == []

    def test_gender_filter(self, client, db_session):
        make_barber(db_session, 'Male Barber', 'male@example.com', gender='MALE')
        make_barber(db_session, 'Female Stylist', 'female@example.com', gender='FEMALE', role='STYLIST')

        response = client.get('/api/barbers?gender=FEMALE')

        data = json.loads(response.data)
        assert [b['user']['name'] for b in data] == ['Female Stylist']

    def test_get_barber_includes_availability(self, client, sample_barber):
        response = client.get(f'/api/barbers/{sample_barber.id}')

        assert response.status_code == 200
        assert len(json.loads(response.data)['availability']) == 7

    def test_get_barber_not_found(self, client, db_session):
        assert client.get('/api/barbers/9999').status_code == 404


@pytest.mark.barbers
class TestBarberAdmin:

    def test_create_barber_with_new_account(self, client, admin_headers, db_session):
        response = client.post(
            '/api/barbers',
            data=json.dumps({
                'name': 'New Barber',
                'email': 'NEW.barber@example.com',
                'password': 'secret123',
                'gender': 'MALE',
                'bio': 'Classic cuts',
            }),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        barber = json.loads(response.data)['barber']
        assert barber['user']['email'] == 'new.barber@example.com'
        assert barber['bio'] == 'Classic cuts'
        rows = db_session.scalar(
            select(func.count(Availability.id)).where(Availability.barber_id == barber['id'])
        )
        assert rows == 7

        # The new account can sign in right away
        login(client, 'new.barber@example.com', 'secret123')

    def test_promote_existing_client(self, client, admin_headers, sample_client, db_session):
        response = client.post(
            '/api/barbers',
            data=json.dumps({'user_id': sample_client.id}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        assert db_session.get(User, sample_client.id).role == 'BARBER'

    def test_create_barber_validation(self, client, admin_headers, sample_client):
        short = client.post(
            '/api/barbers',
            data=json.dumps({'name': 'X', 'email': 'x@example.com', 'password': '123'}),
            content_type='application/json',
            headers=admin_headers
        )
        duplicate = client.post(
            '/api/barbers',
            data=json.dumps({'name': 'X', 'email': 'client@example.com', 'password': '123456'}),
            content_type='application/json',
            headers=admin_headers
        )
        unknown = client.post(
            '/api/barbers',
            data=json.dumps({'user_id': 9999}),
            content_type='application/json',
            headers=admin_headers
        )

        assert short.status_code == 400
        assert duplicate.status_code == 400
        assert unknown.status_code == 404

    def test_create_barber_requires_admin(self, client, barber_headers):
        response = client.post(
            '/api/barbers',
            data=json.dumps({'name': 'X', 'email': 'x@example.com', 'password': '123456'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 403

    def test_update_barber(self, client, admin_headers, sample_barber):
        response = client.put(
            f'/api/barbers/{sample_barber.id}',
            data=json.dumps({'name': 'Renamed Barber', 'gender': 'FEMALE', 'is_active': False}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 200
        data = json.loads(response.data)['barber']
        assert data['user']['name'] == 'Renamed Barber'
        assert data['gender'] == 'FEMALE'
        assert data['is_active'] is False

    def test_delete_barber_removes_account(
        self, client, admin_headers, sample_barber, sample_appointment, db_session
    ):
        user_id = sample_barber.user_id

        response = client.delete(f'/api/barbers/{sample_barber.id}', headers=admin_headers)

        assert response.status_code == 200
        assert db_session.scalar(select(func.count(Barber.id))) == 0
        assert db_session.scalar(select(func.count(User.id)).where(User.id == user_id)) == 0
        assert db_session.scalar(select(func.count(Appointment.id))) == 0
        assert db_session.scalar(select(func.count(Service.id))) == 0


@pytest.mark.barbers
class TestServices:

    def test_list_services_for_barber(self, client, sample_barber, sample_service, db_session):
        db_session.add(Service(name='Beard Trim', duration=15, price=10, gender='MALE'))
        other = make_barber(db_session, 'Other', 'other.barber@example.com')
        db_session.add(Service(name='Color', duration=90, price=80, barber_id=other.id))
        db_session.commit()

        response = client.get(f'/api/services?barber_id={sample_barber.id}')

        names = sorted(s['name'] for s in json.loads(response.data))
        assert names == ['Beard Trim', 'Classic Cut']

    def test_gender_filter_is_strict(self, client, sample_service, db_session):
        db_session.add(Service(name='Beard Trim', duration=15, price=10, gender='MALE'))
        db_session.commit()

        response = client.get('/api/services?gender=MALE')

        assert [s['name'] for s in json.loads(response.data)] == ['Beard Trim']

    def test_admin_view_requires_staff(self, client, auth_headers, sample_service):
        assert client.get('/api/services?admin_view=true').status_code == 401
        assert client.get('/api/services?admin_view=true', headers=auth_headers).status_code == 403

    def test_create_service_for_matching_barbers(self, client, admin_headers, db_session):
        make_barber(db_session, 'Male Barber', 'male@example.com', gender='MALE')
        make_barber(db_session, 'Female Stylist', 'female@example.com', gender='FEMALE')

        response = client.post(
            '/api/services',
            data=json.dumps({'name': 'Skin Fade', 'duration': 45, 'price': 35, 'gender': 'MALE'}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        assert len(json.loads(response.data)['services']) == 1

    def test_create_service_no_matching_barbers(self, client, admin_headers, db_session):
        response = client.post(
            '/api/services',
            data=json.dumps({'name': 'Skin Fade', 'duration': 45, 'price': 35, 'gender': 'FEMALE'}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_create_service_missing_fields(self, client, barber_headers):
        response = client.post(
            '/api/services',
            data=json.dumps({'name': 'Skin Fade'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400

    def test_barber_cannot_edit_other_barbers_service(self, client, sample_service, db_session):
        make_barber(db_session, 'Other', 'other.barber@example.com')
        headers = login(client, 'other.barber@example.com')

        response = client.put(
            f'/api/services/{sample_service.id}',
            data=json.dumps({'price': 1}),
            content_type='application/json',
            headers=headers
        )

        assert response.status_code == 403

    def test_owner_updates_service(self, client, barber_headers, sample_service):
        response = client.put(
            f'/api/services/{sample_service.id}',
            data=json.dumps({'price': 30, 'duration': 40}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 200
        assert json.loads(response.data)['service']['price'] == 30

    def test_update_coerces_numeric_strings(self, client, barber_headers, sample_service, db_session):
        response = client.put(
            f'/api/services/{sample_service.id}',
            data=json.dumps({'price': '32.50', 'duration': '45'}),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 200
        service = db_session.get(Service, sample_service.id)
        assert service.duration == 45
        assert service.price == 32.5

    @pytest.mark.parametrize('body', [
        {'duration': 'abc'},
        {'price': 'free'},
        {'price': None},
        {'duration': 0},
        {'price': -5},
    ])
    def test_update_rejects_bad_numbers(self, client, barber_headers, sample_service, db_session, body):
        response = client.put(
            f'/api/services/{sample_service.id}',
            data=json.dumps(body),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 400
        service = db_session.get(Service, sample_service.id)
        assert (service.duration, service.price) == (30, 25.0)

    def test_delete_unused_service(self, client, barber_headers, sample_service, db_session):
        response = client.delete(f'/api/services/{sample_service.id}', headers=barber_headers)

        assert json.loads(response.data)['message'] == 'Service deleted'
        assert db_session.scalar(select(func.count(Service.id))) == 0

    def test_delete_booked_service_deactivates(self, client, barber_headers, sample_service, sample_appointment, db_session):
        response = client.delete(f'/api/services/{sample_service.id}', headers=barber_headers)

        assert json.loads(response.data)['message'] == 'Service deactivated'
        assert db_session.get(Service, sample_service.id).is_active is False
