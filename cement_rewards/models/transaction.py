from datetime import datetime
import enum
from .. import db

class TransactionType(str, enum.Enum):
    EARNED = 'earned'
    REDEEMED = 'redeemed'

class TransactionStatus(str, enum.Enum):
    PENDING = 'pending'
    DEALER_APPROVED = 'dealer_approved'
    APPROVED = 'approved'
    COMPLETED = 'completed'
    REJECTED = 'rejected'

# (type, from) -> allowed targets. Anything missing is terminal.
ALLOWED_TRANSITIONS = {
    (TransactionType.EARNED, TransactionStatus.PENDING): {
        TransactionStatus.DEALER_APPROVED,
        TransactionStatus.REJECTED,
    },
    (TransactionType.EARNED, TransactionStatus.DEALER_APPROVED): {
        TransactionStatus.APPROVED,
        TransactionStatus.REJECTED,
    },
    (TransactionType.REDEEMED, TransactionStatus.PENDING): {
        TransactionStatus.APPROVED,
        TransactionStatus.REJECTED,
    },
    (TransactionType.REDEEMED, TransactionStatus.DEALER_APPROVED): {
        TransactionStatus.APPROVED,
        TransactionStatus.REJECTED,
    },
    (TransactionType.REDEEMED, TransactionStatus.APPROVED): {
        TransactionStatus.COMPLETED,
    },
}

# Statuses in which a redemption still holds the user's debited points
REFUNDABLE_STATUSES = (TransactionStatus.PENDING, TransactionStatus.DEALER_APPROVED)

class Transaction(db.Model):
    """A points request: earned from a cement purchase or spent on a reward"""
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False, default='')
    status = db.Column(db.String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    dealer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    reward_id = db.Column(db.Integer, db.ForeignKey('rewards.id'), nullable=True, index=True)
    cement_type = db.Column(db.String(10))
    bag_count = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
    )

    # Relationships
    user = db.relationship('User', foreign_keys=[user_id],
                           backref=db.backref('transactions', lazy='dynamic'))
    dealer = db.relationship('User', foreign_keys=[dealer_id],
                             backref=db.backref('dealer_transactions', lazy='dynamic'))
    reward = db.relationship('Reward', backref=db.backref('transactions', lazy='dynamic'))

    @property
    def type_enum(self):
        return TransactionType(self.type)

    @property
    def status_enum(self):
        return TransactionStatus(self.status)

    def can_transition_to(self, target):
        allowed = ALLOWED_TRANSITIONS.get((self.type_enum, self.status_enum), set())
        return TransactionStatus(target) in allowed

    def __repr__(self):
        return f'<Transaction {self.id}: {self.type} {self.amount} points ({self.status})>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'amount': self.amount,
            'description': self.description,
            'status': self.status,
            'dealer_id': self.dealer_id,
            'reward_id': self.reward_id,
            'cement_type': self.cement_type,
            'bag_count': self.bag_count,
            'user': self.user.to_public_dict() if self.user else None,
            'dealer': self.dealer.to_public_dict() if self.dealer else None,
            'reward_title': self.reward.title if self.reward else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
