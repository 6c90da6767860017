import itertools
import pytest
from cement_rewards import create_app, db
from cement_rewards.config import TestingConfig
from cement_rewards.models.user import User
from cement_rewards.models.reward import Reward

@pytest.fixture
def app():
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()

@pytest.fixture
def ctx(app):
    """Keep an application context open for service-level tests"""
    with app.app_context():
        yield app

@pytest.fixture
def make_user():
    """Create and commit a user; needs an active application context"""
    counter = itertools.count(1)

    def _make_user(role='contractor', district='Surat', points=0, password='password123', **kwargs):
        n = next(counter)
        user = User(
            email=kwargs.pop('email', f'{role}{n}@tapeecement.in'),
            first_name=kwargs.pop('first_name', role.replace('_', ' ').title()),
            last_name=kwargs.pop('last_name', str(n)),
            role=role,
            district=district,
            city=kwargs.pop('city', district),
            gst_number=kwargs.pop('gst_number', '24ABCDE1234F1Z5' if role == 'dealer' else None),
            user_code=User.generate_user_code(),
            points=points,
            **kwargs
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user

@pytest.fixture
def make_reward():
    def _make_reward(title='Premium Toolbox', points_required=800, **kwargs):
        reward = Reward(
            title=title,
            description=kwargs.pop('description', f'{title} for loyal customers'),
            points_required=points_required,
            available=kwargs.pop('available', True),
            visible_to=kwargs.pop('visible_to', []),
            **kwargs
        )
        db.session.add(reward)
        db.session.commit()
        return reward

    return _make_reward

@pytest.fixture
def buyer(ctx, make_user):
    return make_user('contractor', first_name='Ramesh', last_name='Patel')

@pytest.fixture
def dealer(ctx, make_user):
    return make_user('dealer', first_name='Suresh', last_name='Shah')

@pytest.fixture
def admin(ctx, make_user):
    return make_user('admin', first_name='Asha', last_name='Mehta')
