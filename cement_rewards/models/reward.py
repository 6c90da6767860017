from datetime import datetime, date
from sqlalchemy.dialects.postgresql import JSONB
from .. import db

class Reward(db.Model):
    """Catalogue item that users can redeem points for"""
    __tablename__ = 'rewards'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    points_required = db.Column(db.Integer, nullable=False, index=True)
    available = db.Column(db.Boolean, nullable=False, default=True)
    # Roles that may see and redeem the reward; empty means every buyer role
    visible_to = db.Column(db.JSON().with_variant(JSONB(), 'postgresql'))
    expiry_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('points_required > 0', name='ck_rewards_points_required_positive'),
    )

    def is_expired(self, today=None):
        if not self.expiry_date:
            return False
        return self.expiry_date < (today or date.today())

    def is_visible_to(self, role):
        return not self.visible_to or role in self.visible_to

    def is_redeemable_by(self, user, today=None):
        return self.available and not self.is_expired(today) and self.is_visible_to(user.role)

    @classmethod
    def get_catalogue_for(cls, user, today=None):
        """Rewards the user can see, cheapest first"""
        rewards = cls.query.filter(cls.available.is_(True)).order_by(cls.points_required.asc()).all()
        return [r for r in rewards if r.is_redeemable_by(user, today)]

    @classmethod
    def initialize_defaults(cls):
        """Initialize the sample catalogue"""
        defaults = [
            {
                'title': 'Cash Discount',
                'description': 'Get ₹1000 discount on your next cement order',
                'points_required': 1000,
                'expiry_date': date(2026, 12, 31)
            },
            {
                'title': 'Goa Tour Package',
                'description': 'Enjoy a 3-day tour of Goa with family (2 adults)',
                'points_required': 5000,
                'expiry_date': date(2027, 6, 30)
            },
            {
                'title': 'Office Chair',
                'description': 'Premium ergonomic office chair for your workspace',
                'points_required': 1000,
                'expiry_date': date(2026, 12, 31)
            },
            {
                'title': 'Premium Toolbox',
                'description': 'Professional-grade toolbox with essential construction tools',
                'points_required': 800,
                'expiry_date': date(2027, 8, 15)
            }
        ]

        for reward_data in defaults:
            if not cls.query.filter_by(title=reward_data['title']).first():
                db.session.add(cls(available=True, visible_to=[], **reward_data))

        db.session.commit()

    def __repr__(self):
        return f'<Reward {self.id}: {self.title} ({self.points_required} points)>'

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'image_url': self.image_url,
            'points_required': self.points_required,
            'available': self.available,
            'visible_to': self.visible_to or [],
            'expiry_date': self.expiry_date.isoformat() if self.expiry_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
