from datetime import datetime
import enum
from flask import current_app
from sqlalchemy import func
from ..models.transaction import Transaction, TransactionType, TransactionStatus
from ..models.user import User
from ..permissions import ensure_can, ROLE_DEALER
from ..exceptions import ValidationError, InvalidBagCountError, MissingDealerError, NotFoundError
from .. import db
from .ledger import atomic
from .notification import NotificationService

class CementType(str, enum.Enum):
    OPC = 'OPC'
    PPC = 'PPC'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown cement type: {value}")

# Points per bag
POINT_RATES = {
    CementType.OPC: 5,
    CementType.PPC: 10,
}

def calculate_points(bag_count, cement_type):
    """Points earned for ``bag_count`` bags of ``cement_type``.

    Assumes a positive integer bag count; see validate_bag_count.
    """
    return bag_count * POINT_RATES[CementType.parse(cement_type)]

def validate_bag_count(bag_count):
    if isinstance(bag_count, bool) or not isinstance(bag_count, int) or bag_count < 1:
        raise InvalidBagCountError("Bag count must be a positive whole number")
    return bag_count

class PointService:
    """Service for earning points from cement purchases"""

    @staticmethod
    def submit_earn_request(requester, dealer_id, cement_type, bag_count):
        """Record a buyer's claim of N bags bought from a dealer.

        Creates a pending earned transaction; the buyer's balance is not
        touched until an admin approves it.
        """
        ensure_can(requester, 'submit_earn_request')
        validate_bag_count(bag_count)
        cement_type = CementType.parse(cement_type)

        if dealer_id is None:
            raise MissingDealerError("Please select a dealer")
        dealer = db.session.get(User, dealer_id)
        if not dealer or dealer.role != ROLE_DEALER:
            raise MissingDealerError(f"Dealer {dealer_id} not found")
        if dealer.id == requester.id:
            raise ValidationError("You cannot request points from yourself")
        if dealer.district != requester.district:
            raise ValidationError("Dealer must be in your district")

        points = calculate_points(bag_count, cement_type)
        transaction = Transaction(
            user_id=requester.id,
            type=TransactionType.EARNED.value,
            amount=points,
            description=f"Purchased {bag_count} {cement_type.value} bags from {dealer.full_name}",
            status=TransactionStatus.PENDING.value,
            dealer_id=dealer.id,
            cement_type=cement_type.value,
            bag_count=bag_count
        )

        with atomic('earn request'):
            db.session.add(transaction)
            db.session.flush()
            NotificationService.notify(
                dealer.id,
                'New points request',
                f"{requester.full_name} requested {points} points for {bag_count} {cement_type.value} bags",
                'transaction'
            )

        current_app.logger.info(
            f"User {requester.id} requested {points} points from dealer {dealer.id} (transaction {transaction.id})"
        )
        return transaction

    @staticmethod
    def get_district_dealers(user):
        """Dealers a buyer can claim a purchase from"""
        return User.query.filter(
            User.role == ROLE_DEALER,
            User.district == user.district,
            User.id != user.id
        ).order_by(User.first_name.asc()).all()

    @staticmethod
    def get_user_transactions(user_id, type=None, status=None):
        query = Transaction.query.filter_by(user_id=user_id)
        try:
            if type:
                query = query.filter_by(type=TransactionType(type).value)
            if status:
                query = query.filter_by(status=TransactionStatus(status).value)
        except ValueError:
            raise ValidationError("Invalid type or status filter")
        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    @staticmethod
    def get_user_points_summary(user_id):
        """Get summary of user's points"""
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")

        def total(type, statuses):
            return db.session.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
                Transaction.user_id == user_id,
                Transaction.type == type.value,
                Transaction.status.in_([s.value for s in statuses])
            ).scalar()

        earned = total(TransactionType.EARNED, [TransactionStatus.APPROVED])
        redeemed = total(TransactionType.REDEEMED, [
            TransactionStatus.PENDING,
            TransactionStatus.DEALER_APPROVED,
            TransactionStatus.APPROVED,
            TransactionStatus.COMPLETED
        ])

        bags_purchased = db.session.query(func.coalesce(func.sum(Transaction.bag_count), 0)).filter(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.EARNED.value,
            Transaction.status == TransactionStatus.APPROVED.value
        ).scalar()

        pending_requests = Transaction.query.filter(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.EARNED.value,
            Transaction.status.in_([TransactionStatus.PENDING.value, TransactionStatus.DEALER_APPROVED.value])
        ).count()

        rewards_redeemed = Transaction.query.filter(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.REDEEMED.value,
            Transaction.status.in_([TransactionStatus.APPROVED.value, TransactionStatus.COMPLETED.value])
        ).count()

        recent = Transaction.query.filter_by(user_id=user_id)\
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())\
            .limit(current_app.config.get('RECENT_ACTIVITY_LIMIT', 5)).all()

        return {
            'total_points': user.points,
            'points_earned': int(earned),
            'points_redeemed': int(redeemed),
            'bags_purchased': int(bags_purchased),
            'pending_requests': pending_requests,
            'rewards_redeemed': rewards_redeemed,
            'recent_activity': [tx.to_dict() for tx in recent],
            'generated_at': datetime.utcnow().isoformat()
        }
