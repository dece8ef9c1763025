import pytest
import json
from datetime import date, datetime, timedelta

from sqlalchemy import func, select

from app.models import Invoice, InvoiceItemTemplate
from app.services.accounting_service import months_ago, monthly_totals


def _invoice_body(**overrides):
    body = {
        'type': 'CLIENT_SERVICE',
        'amount': 45.5,
        'recipient_name': 'Walk-in Client',
        'recipient_email': 'walkin@example.com',
        'items': [
            {'description': 'Haircut', 'price': 30, 'quantity': 1},
            {'description': 'Beard trim', 'price': '7.75', 'quantity': 2},
            {'description': '', 'price': 10},
            {'description': 'Broken', 'price': 'n/a'},
        ],
    }
    body.update(overrides)
    return body


def _payment_body(barber_id, amount=100, status='PENDING'):
    monday = date.today() - timedelta(days=date.today().weekday())
    return {
        'barber_id': barber_id,
        'amount': amount,
        'week_start': monday.isoformat(),
        'week_end': (monday + timedelta(days=6)).isoformat(),
        'status': status,
    }


@pytest.mark.invoices
class TestInvoices:

    def test_create_invoice(self, client, admin_headers):
        response = client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body()),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        invoice = json.loads(response.data)['invoice']
        assert invoice['invoice_number'] == f'INV-{datetime.now().year}-0001'
        assert invoice['status'] == 'PENDING'
        assert invoice['issuer_name'] == 'JBookMe'
        assert invoice['items'] == [
            {'description': 'Haircut', 'quantity': 1, 'price': 30.0, 'total': 30.0},
            {'description': 'Beard trim', 'quantity': 2, 'price': 7.75, 'total': 15.5},
        ]

    def test_invoice_numbers_increase(self, client, admin_headers):
        for _ in range(2):
            response = client.post(
                '/api/invoices',
                data=json.dumps(_invoice_body()),
                content_type='application/json',
                headers=admin_headers
            )

        assert json.loads(response.data)['invoice']['invoice_number'].endswith('-0002')

    def test_create_invoice_for_registered_user(self, client, admin_headers, sample_client):
        response = client.post(
            '/api/invoices',
            data=json.dumps({'type': 'CLIENT_SERVICE', 'amount': 20, 'recipient_id': sample_client.id}),
            content_type='application/json',
            headers=admin_headers
        )

        invoice = json.loads(response.data)['invoice']
        assert invoice['recipient_email'] == 'client@example.com'
        assert invoice['recipient_phone'] == '5551234567'

    @pytest.mark.parametrize('overrides,status', [
        ({'type': 'GIFT_CARD'}, 400),
        ({'amount': '45'}, 400),
        ({'recipient_name': None}, 400),
        ({'recipient_email': None}, 400),
        ({'recipient_id': 9999}, 404),
        ({'due_date': 'tomorrow'}, 400),
    ])
    def test_create_invoice_validation(self, client, admin_headers, overrides, status):
        response = client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body(**overrides)),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == status

    def test_clients_see_only_their_invoices(self, client, admin_headers, auth_headers, sample_client):
        client.post(
            '/api/invoices',
            data=json.dumps({'type': 'CLIENT_SERVICE', 'amount': 20, 'recipient_id': sample_client.id}),
            content_type='application/json',
            headers=admin_headers
        )
        client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body()),
            content_type='application/json',
            headers=admin_headers
        )

        own = client.get('/api/invoices', headers=auth_headers)
        everything = client.get('/api/invoices', headers=admin_headers)

        assert len(json.loads(own.data)) == 1
        assert len(json.loads(everything.data)) == 2
        assert client.get('/api/invoices?type=REFUND', headers=admin_headers).status_code == 400
        assert client.get('/api/invoices?user_id=9999', headers=auth_headers).status_code == 403

    def test_invoice_detail_visibility(self, client, admin_headers, auth_headers):
        created = client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body()),
            content_type='application/json',
            headers=admin_headers
        )
        invoice_id = json.loads(created.data)['invoice']['id']

        assert client.get(f'/api/invoices/{invoice_id}', headers=admin_headers).status_code == 200
        assert client.get(f'/api/invoices/{invoice_id}', headers=auth_headers).status_code == 403
        assert client.get('/api/invoices/9999', headers=admin_headers).status_code == 404

    def test_update_and_mark_paid(self, client, admin_headers):
        created = client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body()),
            content_type='application/json',
            headers=admin_headers
        )
        invoice_id = json.loads(created.data)['invoice']['id']

        updated = client.patch(
            f'/api/invoices/{invoice_id}',
            data=json.dumps({'amount': '50', 'description': 'Adjusted'}),
            content_type='application/json',
            headers=admin_headers
        )
        assert json.loads(updated.data)['invoice']['amount'] == 50.0

        paid = client.patch(
            f'/api/invoices/{invoice_id}/status',
            data=json.dumps({'status': 'PAID'}),
            content_type='application/json',
            headers=admin_headers
        )
        data = json.loads(paid.data)['invoice']
        assert data['is_paid'] is True
        assert data['paid_at'] is not None

        reopened = client.patch(
            f'/api/invoices/{invoice_id}/status',
            data=json.dumps({'status': 'PENDING'}),
            content_type='application/json',
            headers=admin_headers
        )
        assert json.loads(reopened.data)['invoice']['paid_at'] is None

    def test_invalid_status(self, client, admin_headers):
        response = client.patch(
            '/api/invoices/1/status',
            data=json.dumps({'status': 'OVERDUE'}),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_send_reports_email_failure(self, client, admin_headers):
        created = client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body()),
            content_type='application/json',
            headers=admin_headers
        )
        invoice_id = json.loads(created.data)['invoice']['id']

        response = client.post(f'/api/invoices/{invoice_id}/send', headers=admin_headers)

        assert response.status_code == 502

    def test_create_requires_admin(self, client, barber_headers):
        response = client.post(
            '/api/invoices',
            data=json.dumps(_invoice_body()),
            content_type='application/json',
            headers=barber_headers
        )

        assert response.status_code == 403


@pytest.mark.invoices
class TestInvoiceItems:

    def test_item_catalog(self, client, admin_headers, db_session):
        for description, price in (('Shampoo', 8), ('Hair wax', 12.5)):
            response = client.post(
                '/api/invoice-items',
                data=json.dumps({'description': description, 'price': price}),
                content_type='application/json',
                headers=admin_headers
            )
            assert response.status_code == 201

        listed = json.loads(client.get('/api/invoice-items', headers=admin_headers).data)
        assert [i['description'] for i in listed] == ['Hair wax', 'Shampoo']

        deleted = client.delete(f'/api/invoice-items?id={listed[0]["id"]}', headers=admin_headers)
        assert deleted.status_code == 200
        assert db_session.scalar(select(func.count(InvoiceItemTemplate.id))) == 1

    def test_item_validation(self, client, admin_headers):
        negative = client.post(
            '/api/invoice-items',
            data=json.dumps({'description': 'Refund', 'price': -5}),
            content_type='application/json',
            headers=admin_headers
        )

        assert negative.status_code == 400
        assert client.delete('/api/invoice-items', headers=admin_headers).status_code == 400
        assert client.delete('/api/invoice-items?id=9999', headers=admin_headers).status_code == 404


@pytest.mark.invoices
class TestBarberPayments:

    def test_payment_issues_invoice(self, client, admin_headers, sample_barber):
        response = client.post(
            '/api/barber-payments',
            data=json.dumps(_payment_body(sample_barber.id, status='PAID')),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['payment']['paid_at'] is not None
        assert data['invoice']['type'] == 'BARBER_PAYMENT'
        assert data['invoice']['status'] == 'PAID'
        assert data['invoice']['recipient_id'] == sample_barber.user_id
        assert data['invoice']['barber_payment_id'] == data['payment']['id']

    def test_barber_sees_own_payments(self, client, admin_headers, barber_headers, sample_barber):
        client.post(
            '/api/barber-payments',
            data=json.dumps(_payment_body(sample_barber.id)),
            content_type='application/json',
            headers=admin_headers
        )

        response = client.get('/api/barber-payments', headers=barber_headers)

        assert len(json.loads(response.data)) == 1

    def test_clients_cannot_list_payments(self, client, auth_headers):
        assert client.get('/api/barber-payments', headers=auth_headers).status_code == 403

    @pytest.mark.parametrize('overrides,status', [
        ({'amount': 0}, 400),
        ({'status': 'LATE'}, 400),
        ({'week_start': 'soon'}, 400),
        ({'barber_id': 9999}, 404),
    ])
    def test_payment_validation(self, client, admin_headers, sample_barber, overrides, status):
        body = _payment_body(sample_barber.id)
        body.update(overrides)

        response = client.post(
            '/api/barber-payments',
            data=json.dumps(body),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == status


@pytest.mark.invoices
class TestAccounting:

    def test_summary(self, client, admin_headers, sample_barber, db_session):
        for amount, status in ((100, 'PAID'), (50, 'PENDING')):
            client.post(
                '/api/barber-payments',
                data=json.dumps(_payment_body(sample_barber.id, amount=amount, status=status)),
                content_type='application/json',
                headers=admin_headers
            )
        client.post(
            '/api/accounting/expenses',
            data=json.dumps({'category': 'Supplies', 'amount': 30, 'description': 'Clippers oil'}),
            content_type='application/json',
            headers=admin_headers
        )

        response = client.get('/api/accounting/summary', headers=admin_headers)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['barber_payments_income'] == 100
        assert data['invoices_income'] == 100
        assert data['total_income'] == 200
        assert data['total_expenses'] == 30
        assert data['balance'] == 170
        assert data['total_pending'] == 100
        assert data['pending_payments_count'] == 2
        assert data['expenses_by_category'] == [{'category': 'Supplies', 'total': 30.0}]
        month = datetime.now().strftime('%Y-%m')
        assert data['monthly_income'] == [{'month': month, 'total': 100.0}]
        assert data['monthly_expenses'] == [{'month': month, 'total': 30.0}]
        assert db_session.scalar(select(func.count(Invoice.id))) == 2

    def test_summary_date_range(self, client, admin_headers):
        response = client.get('/api/accounting/summary?start_date=bad&end_date=2025-01-01', headers=admin_headers)

        assert response.status_code == 400

    @pytest.mark.parametrize('body', [
        {'category': '', 'amount': 10},
        {'category': 'Rent', 'amount': -1},
        {'category': 'Rent', 'amount': 'lots'},
    ])
    def test_expense_validation(self, client, admin_headers, body):
        response = client.post(
            '/api/accounting/expenses',
            data=json.dumps(body),
            content_type='application/json',
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_monthly_totals(self):
        rows = [
            (datetime(2025, 1, 5), 10),
            (datetime(2025, 3, 1), 2),
            (datetime(2025, 1, 20), 5.5),
        ]

        assert monthly_totals(rows) == [
            {'month': '2025-01', 'total': 15.5},
            {'month': '2025-03', 'total': 2.0},
        ]
        assert monthly_totals([]) == []

    def test_months_ago_crosses_year(self):
        assert months_ago(datetime(2025, 2, 15, 9, 30), 6) == datetime(2024, 8, 1)
