import pytest
from cement_rewards import db
from cement_rewards.models.user import User

PASSWORD = 'password123'

def register(client, **overrides):
    payload = {
        'first_name': 'Ramesh',
        'last_name': 'Patel',
        'email': 'ramesh@tapeecement.in',
        'password': PASSWORD,
        'confirm_password': PASSWORD,
        'role': 'contractor',
        'mobile_number': '9876543210',
        'city': 'Surat',
        'address': '12 Ring Road',
        'district': 'Surat'
    }
    payload.update(overrides)
    return client.post('/api/v1/auth/register', json=payload)

def login(client, email, password=PASSWORD):
    return client.post('/api/v1/auth/login', json={'email': email, 'password': password})

@pytest.fixture
def clients(app, make_user):
    """Logged-in clients for a buyer, a dealer and an admin"""
    with app.app_context():
        make_user('admin', email='admin@tapeecement.in')

    buyer, dealer, admin = app.test_client(), app.test_client(), app.test_client()
    dealer_response = register(dealer, first_name='Suresh', last_name='Shah', email='suresh@tapeecement.in',
                               role='dealer', gst_number='24AAACT1234F1Z5')
    assert dealer_response.status_code == 201
    assert register(buyer).status_code == 201
    assert login(admin, 'admin@tapeecement.in').status_code == 200

    return {
        'buyer': buyer,
        'dealer': dealer,
        'admin': admin,
        'dealer_id': dealer_response.get_json()['id']
    }

def test_register_and_me(app):
    client = app.test_client()
    response = register(client, email='Ramesh@TapeeCement.in')
    assert response.status_code == 201
    body = response.get_json()
    assert body['email'] == 'ramesh@tapeecement.in'
    assert body['points'] == 0
    assert len(body['user_code']) == 5

    me = client.get('/api/v1/auth/me')
    assert me.status_code == 200
    assert me.get_json()['role'] == 'contractor'

def test_register_rejects_bad_input(app):
    client = app.test_client()
    assert register(client, role='admin').status_code == 400
    assert register(client, role='dealer').status_code == 400
    assert register(client, confirm_password='different').status_code == 400

    assert register(client).status_code == 201
    duplicate = register(app.test_client())
    assert duplicate.status_code == 400
    assert duplicate.get_json()['error'] == 'An account with this email already exists'

def test_login_failure(app):
    client = app.test_client()
    register(app.test_client())
    response = login(client, 'ramesh@tapeecement.in', 'wrong-password')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid email or password'

def test_requires_login(app):
    client = app.test_client()
    assert client.get('/api/v1/auth/me').status_code == 401
    assert client.post('/api/v1/points/requests', json={}).status_code == 401
    assert client.post('/api/v1/approvals/admin/1/approve').status_code == 401

def test_calculate(clients):
    buyer = clients['buyer']
    response = buyer.get('/api/v1/points/calculate?bags=20&cement_type=opc')
    assert response.status_code == 200
    assert response.get_json() == {'bags': 20, 'cement_type': 'OPC', 'points': 100}

    assert buyer.get('/api/v1/points/calculate?bags=0').status_code == 400
    assert buyer.get('/api/v1/points/calculate?bags=2.5').status_code == 400
    assert buyer.get('/api/v1/points/calculate?bags=3&cement_type=white').status_code == 400

def test_earn_and_approve_over_http(clients):
    buyer, dealer, admin = clients['buyer'], clients['dealer'], clients['admin']

    dealers = buyer.get('/api/v1/points/dealers').get_json()
    assert [d['id'] for d in dealers] == [clients['dealer_id']]

    response = buyer.post('/api/v1/points/requests', json={
        'dealer_id': clients['dealer_id'],
        'cement_type': 'PPC',
        'bag_count': 10
    })
    assert response.status_code == 201
    tx = response.get_json()
    assert tx['status'] == 'pending'
    assert tx['amount'] == 100

    # Admin cannot finalize before the dealer vouches
    early = admin.post(f"/api/v1/approvals/admin/{tx['id']}/approve")
    assert early.status_code == 409

    queue = dealer.get('/api/v1/approvals/dealer').get_json()
    assert [t['id'] for t in queue] == [tx['id']]

    response = dealer.post(f"/api/v1/approvals/dealer/{tx['id']}/approve")
    assert response.status_code == 200
    assert response.get_json()['status'] == 'dealer_approved'
    assert buyer.get('/api/v1/auth/me').get_json()['points'] == 0

    response = admin.post(f"/api/v1/approvals/admin/{tx['id']}/approve")
    assert response.status_code == 200
    assert response.get_json()['status'] == 'approved'
    assert buyer.get('/api/v1/auth/me').get_json()['points'] == 100

    again = admin.post(f"/api/v1/approvals/admin/{tx['id']}/approve")
    assert again.status_code == 409
    assert buyer.get('/api/v1/points/summary').get_json()['total_points'] == 100

def test_earn_request_validation(clients):
    buyer = clients['buyer']
    for payload in (
        {'cement_type': 'PPC', 'bag_count': 10},
        {'dealer_id': clients['dealer_id'], 'cement_type': 'PPC', 'bag_count': 0},
        {'dealer_id': clients['dealer_id'], 'cement_type': 'PPC', 'bag_count': 2.5},
        {'dealer_id': clients['dealer_id'], 'cement_type': 'white', 'bag_count': 3},
    ):
        assert buyer.post('/api/v1/points/requests', json=payload).status_code == 400

def test_role_boundaries(clients):
    buyer, dealer, admin = clients['buyer'], clients['dealer'], clients['admin']

    assert buyer.get('/api/v1/approvals/dealer').status_code == 403
    assert buyer.get('/api/v1/approvals/admin').status_code == 403
    assert dealer.get('/api/v1/approvals/admin/stats').status_code == 403
    assert dealer.get('/api/v1/rewards/orders').status_code == 403
    assert buyer.get('/api/v1/rewards/all').status_code == 403
    assert buyer.post('/api/v1/rewards', json={'title': 'Free Bag', 'points_required': 10}).status_code == 403
    assert admin.post('/api/v1/points/requests', json={
        'dealer_id': clients['dealer_id'], 'cement_type': 'PPC', 'bag_count': 1
    }).status_code == 403

def test_redeem_and_refund_over_http(app, clients):
    buyer, admin = clients['buyer'], clients['admin']
    with app.app_context():
        user = User.query.filter_by(email='ramesh@tapeecement.in').one()
        user.points = 1000
        db.session.commit()

    response = admin.post('/api/v1/rewards', json={
        'title': 'Premium Toolbox',
        'points_required': 800,
        'visible_to': ['contractor'],
        'expiry_date': '2099-08-15'
    })
    assert response.status_code == 201
    reward = response.get_json()
    assert reward['available'] is True

    assert [r['id'] for r in buyer.get('/api/v1/rewards').get_json()] == [reward['id']]

    response = buyer.post(f"/api/v1/rewards/{reward['id']}/redeem")
    assert response.status_code == 201
    redemption = response.get_json()
    assert buyer.get('/api/v1/auth/me').get_json()['points'] == 200

    short = buyer.post(f"/api/v1/rewards/{reward['id']}/redeem")
    assert short.status_code == 400
    assert short.get_json()['error'] == 'Insufficient points for this reward'

    orders = admin.get('/api/v1/rewards/orders').get_json()
    assert orders[0]['pending'] == 1

    response = admin.post(f"/api/v1/approvals/admin/{redemption['id']}/reject")
    assert response.status_code == 200
    assert response.get_json()['status'] == 'rejected'
    assert buyer.get('/api/v1/auth/me').get_json()['points'] == 1000

    assert admin.post(f"/api/v1/approvals/admin/{redemption['id']}/complete").status_code == 409

def test_update_reward_over_http(clients):
    admin = clients['admin']
    reward = admin.post('/api/v1/rewards', json={'title': 'Office Chair', 'points_required': 1000}).get_json()

    assert admin.put(f"/api/v1/rewards/{reward['id']}", json={}).status_code == 400
    response = admin.put(f"/api/v1/rewards/{reward['id']}", json={'available': False})
    assert response.status_code == 200
    assert response.get_json()['available'] is False
    assert admin.put('/api/v1/rewards/999', json={'available': True}).status_code == 404

def test_admin_role_management(app, clients):
    admin = clients['admin']
    users = admin.get('/api/v1/users?role=contractor').get_json()
    assert [u['email'] for u in users] == ['ramesh@tapeecement.in']

    response = admin.put(f"/api/v1/users/{users[0]['id']}/role", json={'role': 'sub_dealer'})
    assert response.status_code == 200
    assert response.get_json()['role'] == 'sub_dealer'

    # Dealers need a GST number on file
    assert admin.put(f"/api/v1/users/{users[0]['id']}/role", json={'role': 'dealer'}).status_code == 400

    me = admin.get('/api/v1/auth/me').get_json()
    assert admin.put(f"/api/v1/users/{me['id']}/role", json={'role': 'contractor'}).status_code == 403

def test_notifications_over_http(clients):
    buyer, dealer = clients['buyer'], clients['dealer']
    buyer.post('/api/v1/points/requests', json={
        'dealer_id': clients['dealer_id'], 'cement_type': 'OPC', 'bag_count': 4
    })

    body = dealer.get('/api/v1/notifications').get_json()
    assert body['unread_count'] == 1
    notification_id = body['notifications'][0]['id']

    assert buyer.post(f'/api/v1/notifications/{notification_id}/read').status_code == 404
    assert dealer.post(f'/api/v1/notifications/{notification_id}/read').status_code == 200
    assert dealer.get('/api/v1/notifications?unread=true').get_json()['notifications'] == []

def test_update_reward_rejects_bad_types(clients):
    admin = clients['admin']
    reward = admin.post('/api/v1/rewards', json={'title': 'Office Chair', 'points_required': 1000}).get_json()

    response = admin.put(f"/api/v1/rewards/{reward['id']}", json={'available': 'no'})
    assert response.status_code == 400
    assert admin.put(f"/api/v1/rewards/{reward['id']}", json={'expiry_date': 20270331}).status_code == 400
    assert admin.get('/api/v1/rewards/all').get_json()[0]['available'] is True

def test_profile_update_over_http(clients):
    buyer = clients['buyer']
    response = buyer.put('/api/v1/auth/me', json={'mobile_number': '9123456780', 'address': '7 Athwa Lines'})
    assert response.status_code == 200
    assert response.get_json()['mobile_number'] == '9123456780'

    assert buyer.put('/api/v1/auth/me', json={'points': 99999}).status_code == 400
    assert buyer.put('/api/v1/auth/me', json={'role': 'admin'}).status_code == 400
    me = buyer.get('/api/v1/auth/me').get_json()
    assert me['points'] == 0
    assert me['role'] == 'contractor'

def test_dealer_manages_customers_over_http(clients):
    buyer, dealer = clients['buyer'], clients['dealer']

    response = dealer.post('/api/v1/users/customers', json={
        'first_name': 'Mahesh',
        'last_name': 'Joshi',
        'email': 'mahesh@tapeecement.in',
        'password': PASSWORD,
        'role': 'contractor',
        'mobile_number': '9812345678',
        'city': 'Olpad',
        'address': '4 Station Road'
    })
    assert response.status_code == 201
    assert response.get_json()['district'] == 'Surat'

    missing_gst = dealer.post('/api/v1/users/customers', json={
        'first_name': 'Sunil',
        'last_name': 'Dave',
        'email': 'sunil@tapeecement.in',
        'password': PASSWORD,
        'role': 'sub_dealer',
        'mobile_number': '9812345679',
        'city': 'Olpad',
        'address': '5 Station Road'
    })
    assert missing_gst.status_code == 400

    body = dealer.get('/api/v1/users/customers').get_json()
    assert body['stats']['total_customers'] == 2
    assert body['stats']['contractors'] == 2
    assert {c['email'] for c in body['customers']} == {'ramesh@tapeecement.in', 'mahesh@tapeecement.in'}

    assert buyer.get('/api/v1/users/customers').status_code == 403
    assert login(buyer, 'mahesh@tapeecement.in').status_code == 200
    assert buyer.get('/api/v1/auth/me').get_json()['district'] == 'Surat'
