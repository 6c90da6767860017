from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from datetime import datetime
import secrets
from .. import db, login_manager
from ..permissions import ROLE_CONTRACTOR

class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    first_name = db.Column(db.String(64), nullable=False)
    last_name = db.Column(db.String(64), nullable=False)
    mobile_number = db.Column(db.String(15))
    role = db.Column(db.String(20), nullable=False, default=ROLE_CONTRACTOR, index=True)
    city = db.Column(db.String(100))
    address = db.Column(db.String(255))
    district = db.Column(db.String(100), index=True)
    gst_number = db.Column(db.String(20))
    user_code = db.Column(db.String(5), unique=True, nullable=False)
    # Only services.ledger writes this column after creation
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('points >= 0', name='ck_users_points_non_negative'),
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @staticmethod
    def generate_user_code():
        """Pick an unused 5-digit code."""
        while True:
            code = str(10000 + secrets.randbelow(90000))
            if not User.query.filter_by(user_code=code).first():
                return code

    def __repr__(self):
        return f'<User {self.id}: {self.email} ({self.role})>'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'mobile_number': self.mobile_number,
            'role': self.role,
            'city': self.city,
            'address': self.address,
            'district': self.district,
            'gst_number': self.gst_number,
            'user_code': self.user_code,
            'points': self.points,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def to_public_dict(self):
        """Fields shown to other users, e.g. a buyer picking a dealer."""
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'city': self.city,
            'district': self.district,
            'mobile_number': self.mobile_number,
            'gst_number': self.gst_number,
            'user_code': self.user_code
        }

@login_manager.user_loader
def load_user(id):
    return db.session.get(User, int(id))
