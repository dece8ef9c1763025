import pytest
import json
from datetime import datetime, timedelta

from sqlalchemy import func, select

from app.models import Notification, Promotion
from app.services.promotions_processor import compute_promotion_status


def _window(start_days, end_days):
    now = datetime.now()
    return (
        (now + timedelta(days=start_days)).isoformat(timespec='seconds'),
        (now + timedelta(days=end_days)).isoformat(timespec='seconds'),
    )


def _promotion(db_session, status, start_days, end_days, **kwargs):
    now = datetime.now()
    promotion = Promotion(
        title=kwargs.pop('title', 'Summer Special'),
        message='20% off all fades',
        start_date=now + timedelta(days=start_days),
        end_date=now + timedelta(days=end_days),
        status=status,
        **kwargs
    )
    db_session.add(promotion)
    db_session.commit()
    return promotion


@pytest.mark.promotions
class TestPromotionStatus:

    @pytest.mark.parametrize('start_days,end_days,expected', [
        (-1, 5, 'ACTIVE'),
        (2, 5, 'SCHEDULED'),
        (-5, -1, 'EXPIRED'),
    ])
    def test_compute_promotion_status(self, start_days, end_days, expected):
        now = datetime(2025, 6, 1, 12, 0)
        start = now + timedelta(days=start_days)
        end = now + timedelta(days=end_days)

        assert compute_promotion_status(start, end, now) == expected


@pytest.mark.promotions
class TestAdminPromotions:

    def test_create_scheduled_promotion(self, client, admin_headers):
        start, end = _window(2, 9)

        response = client.post(
            '/api/admin/promotions',
            data=json.dumps({
                'title': 'Back to School',
                'message': 'Fresh cuts for the new term',
                'discount': 15,
                'start_date': start,
                'end_date': end,
                'target_role': 'ALL',
            }),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        promotion = json.loads(response.data)['promotion']
        assert promotion['status'] == 'SCHEDULED'
        assert promotion['discount'] == '15'
        assert promotion['target_role'] is None
        assert promotion['is_active'] is False

    def test_send_now_announces_active_promotion(self, client, admin_headers, sample_client, db_session):
        start, end = _window(-1, 7)

        response = client.post(
            '/api/admin/promotions',
            data=json.dumps({
                'title': 'Flash Sale',
                'message': 'Today only',
                'start_date': start,
                'end_date': end,
                'target_role': 'CLIENT',
                'send_now': True,
                'notification_type': 'notification',
            }),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        promotion = json.loads(response.data)['promotion']
        assert promotion['status'] == 'ACTIVE'
        assert promotion['sent_count'] == 1
        notes = db_session.scalars(select(Notification)).all()
        assert [n.user_id for n in notes] == [sample_client.id]
        assert notes[0].title == '🎉 Flash Sale'

    @pytest.mark.parametrize('override,status', [
        ({'title': None}, 400),
        ({'end_date': '2020-01-01T00:00:00'}, 400),
        ({'start_date': 'not-a-date'}, 400),
        ({'target_role': 'JANITOR'}, 400),
        ({'notification_type': 'fax'}, 400),
    ])
    def test_create_promotion_validation(self, client, admin_headers, override, status):
        start, end = _window(1, 3)
        body = {'title': 'Promo', 'message': 'Hello', 'start_date': start, 'end_date': end}
        body.update(override)

        response = client.post(
            '/api/admin/promotions',
            data=json.dumps(body),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == status

    def test_admin_only(self, client, auth_headers):
        response = client.get('/api/admin/promotions', headers=auth_headers)

        assert response.status_code == 403

    def test_list_inactive_filter(self, client, admin_headers, db_session):
        _promotion(db_session, 'ACTIVE', -1, 3, title='Running')
        _promotion(db_session, 'CANCELLED', -1, 3, title='Stopped')
        _promotion(db_session, 'EXPIRED', -9, -2, title='Over')

        response = client.get('/api/admin/promotions?status=INACTIVE', headers=admin_headers)

        titles = sorted(p['title'] for p in json.loads(response.data))
        assert titles == ['Over', 'Stopped']

    def test_update_is_active_flag(self, client, admin_headers, db_session):
        promotion = _promotion(db_session, 'ACTIVE', -1, 3)

        response = client.put(
            f'/api/admin/promotions/{promotion.id}',
            data=json.dumps({'is_active': False, 'title': 'Renamed'}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 200
        data = json.loads(response.data)['promotion']
        assert data['status'] == 'CANCELLED'
        assert data['title'] == 'Renamed'

    def test_update_rejects_unknown_status(self, client, admin_headers, db_session):
        promotion = _promotion(db_session, 'ACTIVE', -1, 3)

        response = client.put(
            f'/api/admin/promotions/{promotion.id}',
            data=json.dumps({'status': 'PAUSED'}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_cancel_and_delete(self, client, admin_headers, db_session):
        promotion = _promotion(db_session, 'SCHEDULED', 2, 5)

        bad = client.patch(
            f'/api/admin/promotions/{promotion.id}',
            data=json.dumps({'action': 'pause'}),
            content_type='application/json',
            headers=admin_headers
        )
        assert bad.status_code == 400

        cancelled = client.patch(
            f'/api/admin/promotions/{promotion.id}',
            data=json.dumps({'action': 'cancel'}),
            content_type='application/json',
            headers=admin_headers
        )
        assert json.loads(cancelled.data)['promotion']['status'] == 'CANCELLED'

        deleted = client.delete(f'/api/admin/promotions/{promotion.id}', headers=admin_headers)
        assert deleted.status_code == 200
        assert db_session.scalar(select(func.count(Promotion.id))) == 0


@pytest.mark.promotions
class TestPromotionsJob:

    def test_public_listing_only_current_active(self, client, db_session):
        _promotion(db_session, 'ACTIVE', -1, 3, title='Now')
        _promotion(db_session, 'SCHEDULED', 1, 3, title='Later')
        _promotion(db_session, 'CANCELLED', -1, 3, title='Cancelled')

        response = client.get('/api/promotions')

        assert [p['title'] for p in json.loads(response.data)] == ['Now']

    def test_process_requires_cron_secret(self, client, admin_headers):
        assert client.post('/api/promotions/process').status_code == 401
        assert client.post('/api/promotions/process', headers=admin_headers).status_code == 401

    def test_process_activates_and_expires(self, client, cron_headers, sample_client, sample_admin, db_session):
        due = _promotion(db_session, 'SCHEDULED', -1, 5, title='Due', discount='10%')
        finished = _promotion(db_session, 'ACTIVE', -10, -1, title='Finished')
        cancelled = _promotion(db_session, 'CANCELLED', -10, -1, title='Cancelled')

        response = client.post('/api/promotions/process', headers=cron_headers)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['success'] is True
        assert data['expired'] == 1
        assert data['activated'] == 1
        assert data['notifications_created'] == 2
        assert data['push_configured'] is False

        assert db_session.get(Promotion, due.id).status == 'ACTIVE'
        assert db_session.get(Promotion, finished.id).status == 'EXPIRED'
        assert db_session.get(Promotion, cancelled.id).status == 'CANCELLED'

        message = db_session.scalar(select(Notification.message).limit(1))
        assert message == '20% off all fades - 10%'

    def test_announced_promotion_not_notified_twice(self, client, cron_headers, sample_client, db_session):
        _promotion(db_session, 'SCHEDULED', -1, 5, sent_count=4)

        response = client.get('/api/promotions/process', headers=cron_headers)

        data = json.loads(response.data)
        assert data['activated'] == 1
        assert data['promotions_notified'] == 0
        assert db_session.scalar(select(func.count(Notification.id))) == 0

    def test_target_role_limits_recipients(self, client, cron_headers, sample_client, sample_barber, db_session):
        _promotion(db_session, 'SCHEDULED', -1, 5, target_role='BARBER')

        client.post('/api/promotions/process', headers=cron_headers)

        user_ids = db_session.scalars(select(Notification.user_id)).all()
        assert user_ids == [sample_barber.user_id]
