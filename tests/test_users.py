import pytest
from cement_rewards import db
from cement_rewards.models.user import User
from cement_rewards.services.points import PointService
from cement_rewards.services.user import UserService
from cement_rewards.exceptions import ValidationError, PermissionDeniedError

def test_update_profile_contact_details(buyer):
    UserService.update_profile(buyer, {
        'email': 'Ramesh.Patel@TapeeCement.in',
        'mobile_number': ' 9876543210 ',
        'city': 'Bardoli'
    })

    user = db.session.get(User, buyer.id)
    assert user.email == 'ramesh.patel@tapeecement.in'
    assert user.mobile_number == '9876543210'
    assert user.city == 'Bardoli'
    assert user.role == 'contractor'

@pytest.mark.parametrize('changes', [
    {'role': 'admin'},
    {'points': 5000},
    {'district': 'Rajkot', 'city': 'Rajkot'},
    {'first_name': '  '},
    {'email': 'not-an-email'},
    {'mobile_number': '12345'},
    {'city': 42},
    {},
    None,
])
def test_update_profile_rejects(buyer, changes):
    with pytest.raises(ValidationError):
        UserService.update_profile(buyer, changes)

    user = db.session.get(User, buyer.id)
    assert user.role == 'contractor'
    assert user.points == 0
    assert user.district == 'Surat'

def test_update_profile_email_must_be_unused(buyer, dealer):
    with pytest.raises(ValidationError):
        UserService.update_profile(buyer, {'email': dealer.email.upper()})

def test_dealer_creates_customer_in_own_district(dealer):
    customer = UserService.create_customer(
        dealer,
        email='mahesh@tapeecement.in',
        password='password123',
        first_name='Mahesh',
        last_name='Joshi',
        role='sub_dealer',
        city='Olpad',
        address='4 Station Road',
        mobile_number='9812345678',
        gst_number='24AAACM1234K1Z2'
    )

    assert customer.role == 'sub_dealer'
    assert customer.district == dealer.district
    assert customer.points == 0
    assert UserService.authenticate('mahesh@tapeecement.in', 'password123').id == customer.id

def test_create_customer_guards(dealer, buyer, make_user):
    with pytest.raises(ValidationError):
        UserService.create_customer(dealer, 'd2@tapeecement.in', 'password123', 'Dev', 'Rao', 'dealer',
                                    gst_number='24AAACD1234K1Z2')
    with pytest.raises(ValidationError):
        UserService.create_customer(dealer, 'sd@tapeecement.in', 'password123', 'Sunil', 'Dave', 'sub_dealer')
    with pytest.raises(PermissionDeniedError):
        UserService.create_customer(buyer, 'c2@tapeecement.in', 'password123', 'Chetan', 'Vyas', 'contractor')
    assert User.query.count() == 2

def test_dealer_customers_and_stats(dealer, buyer, make_user):
    sub_dealer = make_user('sub_dealer')
    make_user('contractor', district='Rajkot')
    make_user('dealer')
    PointService.submit_earn_request(buyer, dealer.id, 'PPC', 2)

    customers, stats = UserService.get_dealer_customers(dealer)

    assert {c.id for c in customers} == {buyer.id, sub_dealer.id}
    assert stats == {
        'total_customers': 2,
        'contractors': 1,
        'sub_dealers': 1,
        'active_this_month': 1
    }

def test_only_dealers_see_customers(buyer, admin):
    with pytest.raises(PermissionDeniedError):
        UserService.get_dealer_customers(buyer)
    with pytest.raises(PermissionDeniedError):
        UserService.get_dealer_customers(admin)
