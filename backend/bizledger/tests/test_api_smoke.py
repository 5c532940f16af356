from decimal import Decimal

from conftest import auth_headers


def test_health(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json()['status'] == 'ok'


def test_requests_without_token_are_rejected(client):
    r = client.get('/customers/')
    assert r.status_code == 401
    assert r.headers['WWW-Authenticate'] == 'Bearer'

    r = client.get('/customers/', headers={'Authorization': 'Bearer garbage'})
    assert r.status_code == 401


def test_bad_credentials(client):
    r = client.post('/auth/login', json={'username': 'admin', 'password': 'nope'})
    assert r.status_code == 401


def test_customer_invoice_payment_flow(client):
    headers = auth_headers(client, 'clerk')

    r = client.post('/customers/', json={'name': 'Ali', 'phone': '0551'}, headers=headers)
    assert r.status_code == 201
    customer_id = r.json()['id']

    r = client.post('/invoices/', json={
        'customer_id': customer_id,
        'amount': '500.00',
        'issued_date': '2025-07-01',
        'due_date': '2025-07-31',
    }, headers=headers)
    assert r.status_code == 201
    invoice = r.json()
    assert invoice['status'] == 'unpaid'
    assert invoice['invoice_number'].startswith('INV-20250701-')

    r = client.post('/invoices/payments', json={'invoice_id': invoice['id'], 'amount': '200'}, headers=headers)
    assert r.status_code == 201
    assert r.json()['status'] == 'partial'
    assert Decimal(r.json()['paid_amount']) == Decimal('200')

    r = client.post('/invoices/payments', json={'invoice_id': invoice['id'], 'amount': '300'}, headers=headers)
    assert r.json()['status'] == 'paid'

    r = client.get(f"/invoices/{invoice['id']}/payments", headers=headers)
    assert r.status_code == 200
    assert len(r.json()) == 2

    r = client.get(f'/invoices/customer/{customer_id}', headers=headers)
    assert [i['status'] for i in r.json()] == ['paid']

    r = client.get('/customers/', params={'debt': 'with'}, headers=headers)
    assert [c['name'] for c in r.json()] == ['Ali']


def test_not_found_and_conflict_mapping(client):
    headers = auth_headers(client, 'clerk')

    assert client.get('/customers/999', headers=headers).status_code == 404
    assert client.get('/invoices/999', headers=headers).status_code == 404
    r = client.post('/invoices/payments', json={'invoice_id': 999, 'amount': '10'}, headers=headers)
    assert r.status_code == 404

    customer_id = client.post('/customers/', json={'name': 'Ali'}, headers=headers).json()['id']
    client.post('/invoices/', json={'customer_id': customer_id, 'amount': '10', 'due_date': '2099-01-01'}, headers=headers)

    admin = auth_headers(client, 'admin')
    assert client.delete(f'/customers/{customer_id}', headers=admin).status_code == 409


def test_validation_errors(client):
    headers = auth_headers(client, 'clerk')
    r = client.post('/invoices/', json={'customer_id': 1, 'amount': '-5', 'due_date': '2025-07-31'}, headers=headers)
    assert r.status_code == 422


def test_role_checks(client):
    clerk = auth_headers(client, 'clerk')
    admin = auth_headers(client, 'admin')

    assert client.get('/reports/debts', headers=clerk).status_code == 403
    assert client.get('/reports/debts', headers=admin).status_code == 200
    assert client.get('/auth/users', headers=clerk).status_code == 403

    r = client.post('/auth/register', json={'username': 'boss', 'password': 'secret123', 'role': 'manager'}, headers=admin)
    assert r.status_code == 200
    assert r.json()['role'] == 'manager'

    r = client.post('/auth/register', json={'username': 'boss', 'password': 'secret123'}, headers=admin)
    assert r.status_code == 409

    manager = auth_headers(client, 'boss')
    r = client.get('/reports/payments', params={'start_date': '2025-07-10', 'end_date': '2025-07-01'}, headers=manager)
    assert r.status_code == 400


def test_logout_invalidates_token(client):
    headers = auth_headers(client, 'clerk')
    assert client.get('/auth/me', headers=headers).json()['username'] == 'clerk'

    assert client.post('/auth/logout', headers=headers).status_code == 200

    assert client.get('/auth/me', headers=headers).status_code == 401
    fresh = auth_headers(client, 'clerk')
    assert client.get('/auth/me', headers=fresh).status_code == 200


def test_deactivated_user_loses_access(client):
    admin = auth_headers(client, 'admin')
    clerk = auth_headers(client, 'clerk')
    clerk_id = client.get('/auth/me', headers=clerk).json()['id']

    r = client.patch(f'/auth/users/{clerk_id}/active', json={'is_active': False}, headers=admin)
    assert r.status_code == 200
    assert r.json()['is_active'] is False

    assert client.get('/auth/me', headers=clerk).status_code == 401
    me = client.get('/auth/me', headers=admin).json()
    r = client.patch(f"/auth/users/{me['id']}/active", json={'is_active': False}, headers=admin)
    assert r.status_code == 400


def test_notifications_endpoints(client):
    headers = auth_headers(client, 'clerk')
    client.post('/customers/', json={'name': 'Ali', 'has_debt': True, 'debt_amount': '25'}, headers=headers)

    notes = client.get('/notifications/', headers=headers).json()
    assert len(notes) == 1
    assert notes[0]['type'] == 'debt'

    r = client.post(f"/notifications/{notes[0]['id']}/read", headers=headers)
    assert r.status_code == 200
    assert client.get('/notifications/', params={'unread_only': 'true'}, headers=headers).json() == []

    admin = auth_headers(client, 'admin')
    assert client.post(f"/notifications/{notes[0]['id']}/read", headers=admin).status_code == 404

    r = client.post('/notifications/check-overdue', headers=headers)
    assert r.status_code == 200
    assert r.json() == {'processed': 0}
