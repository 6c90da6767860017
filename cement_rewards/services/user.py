from datetime import datetime
from email_validator import validate_email, EmailNotValidError
from flask import current_app
from sqlalchemy import func
from ..models.user import User
from ..models.transaction import Transaction
from ..permissions import (
    ensure_can,
    USER_ROLES,
    SELF_REGISTER_ROLES,
    CUSTOMER_ROLES,
    ROLE_ADMIN,
    ROLE_DEALER,
    ROLE_CONTRACTOR,
    ROLE_SUB_DEALER,
)
from ..exceptions import ValidationError, NotFoundError, PermissionDeniedError
from .. import db
from .ledger import atomic

# Fields a user may change on their own account
PROFILE_FIELDS = ('first_name', 'last_name', 'email', 'mobile_number', 'city', 'address')
REQUIRED_PROFILE_FIELDS = ('first_name', 'last_name', 'email')

class UserService:
    """Registration, authentication, profiles, dealer customers and role management"""

    @staticmethod
    def register_user(email, password, first_name, last_name, role, district,
                      city=None, address=None, mobile_number=None, gst_number=None):
        if role not in SELF_REGISTER_ROLES:
            raise ValidationError(f"Cannot register as {role}")
        email = (email or '').strip().lower()
        if not email:
            raise ValidationError("Email is required")
        if User.query.filter_by(email=email).first():
            raise ValidationError("An account with this email already exists")
        if not (district or '').strip():
            raise ValidationError("District is required")
        gst_number = (gst_number or '').strip() or None
        if role == ROLE_DEALER and not gst_number:
            raise ValidationError("GST number is required for dealers")

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            district=district.strip(),
            city=city,
            address=address,
            mobile_number=mobile_number,
            gst_number=gst_number,
            user_code=User.generate_user_code(),
            points=0
        )
        user.set_password(password)

        with atomic('registration'):
            db.session.add(user)

        current_app.logger.info(f"Registered {role} {user.id} ({user.email}) in {user.district}")
        return user

    @staticmethod
    def authenticate(email, password):
        user = User.query.filter_by(email=(email or '').strip().lower()).first()
        if user and user.check_password(password):
            return user
        return None

    @staticmethod
    def ensure_admin(email, password):
        """Create an admin account or promote an existing user. Returns (user, created)."""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        created = user is None
        if created:
            user = User(
                email=email,
                first_name='Admin',
                last_name='',
                role=ROLE_ADMIN,
                user_code=User.generate_user_code(),
                points=0
            )
            db.session.add(user)
        user.role = ROLE_ADMIN
        user.set_password(password)
        db.session.commit()
        return user, created

    @staticmethod
    def update_profile(user, changes):
        """Change the caller's own contact details; role, district and points stay put."""
        if not isinstance(changes, dict) or not changes:
            raise ValidationError("No profile changes provided")
        locked = sorted(key for key in changes if key not in PROFILE_FIELDS)
        if locked:
            raise ValidationError(f"Cannot change {', '.join(locked)} from the profile")

        fields = {}
        for key, value in changes.items():
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} must be text")
            value = (value or '').strip() or None
            if value is None and key in REQUIRED_PROFILE_FIELDS:
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} is required")
            fields[key] = value

        if fields.get('mobile_number') and not 10 <= len(fields['mobile_number']) <= 15:
            raise ValidationError("Mobile number must be 10 to 15 characters")

        if 'email' in fields:
            try:
                validate_email(fields['email'], check_deliverability=False)
            except EmailNotValidError as e:
                raise ValidationError(f"Invalid email: {str(e)}")
            fields['email'] = fields['email'].lower()
            taken = User.query.filter(User.email == fields['email'], User.id != user.id).first()
            if taken:
                raise ValidationError("An account with this email already exists")

        with atomic('profile update'):
            for key, value in fields.items():
                setattr(user, key, value)

        current_app.logger.info(f"User {user.id} updated profile fields: {', '.join(sorted(fields))}")
        return user

    # Dealer customers

    @staticmethod
    def get_dealer_customers(actor):
        """Contractors and sub dealers in the dealer's district, newest first, with counts."""
        ensure_can(actor, 'manage_customers')
        customers = User.query.filter(
            User.district == actor.district,
            User.role.in_(CUSTOMER_ROLES),
            User.id != actor.id
        ).order_by(User.created_at.desc(), User.id.desc()).all()

        start_of_month = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        active = 0
        if customers:
            active = db.session.query(func.count(func.distinct(Transaction.user_id))).filter(
                Transaction.user_id.in_([c.id for c in customers]),
                Transaction.created_at >= start_of_month
            ).scalar()

        stats = {
            'total_customers': len(customers),
            'contractors': sum(1 for c in customers if c.role == ROLE_CONTRACTOR),
            'sub_dealers': sum(1 for c in customers if c.role == ROLE_SUB_DEALER),
            'active_this_month': active
        }
        return customers, stats

    @staticmethod
    def create_customer(actor, email, password, first_name, last_name, role,
                        city=None, address=None, mobile_number=None, gst_number=None):
        """Open an account for a buyer in the dealer's own district"""
        ensure_can(actor, 'manage_customers')
        if role not in CUSTOMER_ROLES:
            raise ValidationError(f"Dealers cannot create {role} accounts")
        if role == ROLE_SUB_DEALER and not (gst_number or '').strip():
            raise ValidationError("GST number is required for sub dealers")

        customer = UserService.register_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
            district=actor.district,
            city=city,
            address=address,
            mobile_number=mobile_number,
            gst_number=gst_number
        )
        current_app.logger.info(f"Dealer {actor.id} created {role} {customer.id} in {customer.district}")
        return customer

    @staticmethod
    def list_users(actor, role=None):
        ensure_can(actor, 'manage_users')
        query = User.query
        if role:
            if role not in USER_ROLES:
                raise ValidationError(f"Unknown role: {role}")
            query = query.filter_by(role=role)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    @staticmethod
    def update_role(actor, user_id, role):
        ensure_can(actor, 'manage_users')
        if role not in USER_ROLES:
            raise ValidationError(f"Unknown role: {role}")
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        if user.id == actor.id:
            raise PermissionDeniedError("You cannot change your own role")
        if role == ROLE_DEALER and not user.gst_number:
            raise ValidationError("GST number is required for dealers")

        previous = user.role
        with atomic('role update'):
            user.role = role

        current_app.logger.info(f"Admin {actor.id} changed user {user.id} role {previous} -> {role}")
        return user
