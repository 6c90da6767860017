from datetime import datetime
from .. import db

class DealerApproval(db.Model):
    """Snapshot of an earned request taken when the dealer vouches for it.

    The linked transaction's status stays authoritative; this row only
    records what the dealer signed off on and follows the admin decision.
    """
    __tablename__ = 'dealer_approvals'

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id'), index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    dealer_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False, default='')
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    transaction = db.relationship('Transaction', backref=db.backref('dealer_approvals', lazy='dynamic'))

    @classmethod
    def snapshot(cls, transaction):
        return cls(
            transaction_id=transaction.id,
            user_id=transaction.user_id,
            dealer_id=transaction.dealer_id,
            amount=transaction.amount,
            description=transaction.description,
            status='pending'
        )

    def __repr__(self):
        return f'<DealerApproval {self.id}: transaction {self.transaction_id} ({self.status})>'

    def to_dict(self):
        return {
            'id': self.id,
            'transaction_id': self.transaction_id,
            'user_id': self.user_id,
            'dealer_id': self.dealer_id,
            'amount': self.amount,
            'description': self.description,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
