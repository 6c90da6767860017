from datetime import datetime
from flask import current_app
from sqlalchemy import func
from ..models.transaction import Transaction, TransactionType, TransactionStatus, REFUNDABLE_STATUSES
from ..models.dealer_approval import DealerApproval
from ..permissions import ensure_can
from ..exceptions import NotFoundError, PermissionDeniedError, InvalidTransitionError, ValidationError
from .. import db
from .ledger import atomic, transition, credit
from .notification import NotificationService

OPEN_STATUSES = (TransactionStatus.PENDING.value, TransactionStatus.DEALER_APPROVED.value)

ADMIN_QUEUE_FILTERS = ('pending_points', 'pending_redemptions', 'dealer_approved',
                       'approved', 'completed', 'rejected', 'open', 'all')

class ApprovalService:
    """Dealer and admin review of points transactions.

    Earned requests go pending -> dealer_approved -> approved, crediting the
    buyer only at the admin step. Redemptions were debited when requested,
    so admin approval only confirms them and rejection refunds them.
    """

    @staticmethod
    def _get_transaction(transaction_id):
        transaction = db.session.get(Transaction, transaction_id)
        if not transaction:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    @staticmethod
    def _get_dealer_transaction(transaction_id, actor):
        ensure_can(actor, 'dealer_review')
        transaction = ApprovalService._get_transaction(transaction_id)
        if transaction.dealer_id != actor.id or transaction.type != TransactionType.EARNED.value:
            raise PermissionDeniedError("This request was not made to you")
        return transaction

    @staticmethod
    def _close_dealer_approval(transaction, status):
        DealerApproval.query.filter_by(transaction_id=transaction.id, status='pending')\
            .update({'status': status, 'updated_at': datetime.utcnow()}, synchronize_session=False)

    # Dealer step

    @staticmethod
    def dealer_approve(transaction_id, actor):
        """Vouch for a pending earned request and pass it to admin"""
        transaction = ApprovalService._get_dealer_transaction(transaction_id, actor)

        with atomic('dealer approval'):
            transition(transaction, TransactionStatus.DEALER_APPROVED)
            db.session.add(DealerApproval.snapshot(transaction))
            NotificationService.notify(
                transaction.user_id,
                'Dealer approved your request',
                f"{actor.full_name} confirmed your purchase; {transaction.amount} points are awaiting admin approval",
                'transaction'
            )
        return transaction

    @staticmethod
    def dealer_reject(transaction_id, actor):
        transaction = ApprovalService._get_dealer_transaction(transaction_id, actor)
        # Once sent to admin the dealer can no longer withdraw it
        if transaction.status != TransactionStatus.PENDING.value:
            raise InvalidTransitionError(
                f"Transaction {transaction.id} is {transaction.status}; only pending requests can be rejected by the dealer"
            )

        with atomic('dealer rejection'):
            transition(transaction, TransactionStatus.REJECTED)
            NotificationService.notify(
                transaction.user_id,
                'Points request rejected',
                f"{actor.full_name} rejected your request for {transaction.amount} points",
                'transaction'
            )
        return transaction

    # Admin step

    @staticmethod
    def admin_approve(transaction_id, actor):
        """Finalize a transaction; the only place earned points are credited"""
        ensure_can(actor, 'admin_review')
        transaction = ApprovalService._get_transaction(transaction_id)

        if transaction.type == TransactionType.EARNED.value:
            if transaction.status != TransactionStatus.DEALER_APPROVED.value:
                raise InvalidTransitionError(
                    f"Transaction {transaction.id} is {transaction.status}; earned requests need dealer approval first"
                )
            with atomic('admin approval'):
                transition(transaction, TransactionStatus.APPROVED)
                credit(transaction.user_id, transaction.amount)
                ApprovalService._close_dealer_approval(transaction, 'approved')
                NotificationService.notify(
                    transaction.user_id,
                    'Points approved',
                    f"{transaction.amount} points have been added to your balance",
                    'success'
                )
        else:
            with atomic('redemption approval'):
                transition(transaction, TransactionStatus.APPROVED)
                ApprovalService._close_dealer_approval(transaction, 'approved')
                NotificationService.notify(
                    transaction.user_id,
                    'Redemption approved',
                    f"Your request \"{transaction.description}\" has been approved",
                    'reward'
                )

        current_app.logger.info(f"Admin {actor.id} approved transaction {transaction.id}")
        return transaction

    @staticmethod
    def admin_reject(transaction_id, actor):
        ensure_can(actor, 'admin_review')
        transaction = ApprovalService._get_transaction(transaction_id)

        if transaction.type == TransactionType.REDEEMED.value:
            return ApprovalService.refund_redemption(transaction, actor)

        with atomic('admin rejection'):
            transition(transaction, TransactionStatus.REJECTED)
            ApprovalService._close_dealer_approval(transaction, 'rejected')
            NotificationService.notify(
                transaction.user_id,
                'Points request rejected',
                f"Your request for {transaction.amount} points was rejected",
                'transaction'
            )

        current_app.logger.info(f"Admin {actor.id} rejected transaction {transaction.id}")
        return transaction

    @staticmethod
    def refund_redemption(transaction, actor):
        """Reject a redemption and give the debited points back"""
        ensure_can(actor, 'admin_review')
        if transaction.type != TransactionType.REDEEMED.value:
            raise InvalidTransitionError(f"Transaction {transaction.id} is not a redemption")
        if transaction.status not in [s.value for s in REFUNDABLE_STATUSES]:
            raise InvalidTransitionError(
                f"Transaction {transaction.id} is {transaction.status} and can no longer be refunded"
            )

        with atomic('redemption refund'):
            transition(transaction, TransactionStatus.REJECTED)
            credit(transaction.user_id, transaction.amount)
            ApprovalService._close_dealer_approval(transaction, 'rejected')
            NotificationService.notify(
                transaction.user_id,
                'Redemption rejected',
                f"Your request \"{transaction.description}\" was rejected and {transaction.amount} points were refunded",
                'reward'
            )

        current_app.logger.info(
            f"Admin {actor.id} rejected redemption {transaction.id}, refunded {transaction.amount} points"
        )
        return transaction

    @staticmethod
    def mark_completed(transaction_id, actor):
        """Record that an approved redemption has been dispatched"""
        ensure_can(actor, 'admin_review')
        transaction = ApprovalService._get_transaction(transaction_id)

        with atomic('redemption dispatch'):
            transition(transaction, TransactionStatus.COMPLETED)
            NotificationService.notify(
                transaction.user_id,
                'Reward dispatched',
                f"Your reward \"{transaction.description}\" is on its way",
                'reward'
            )
        return transaction

    # Queues and stats

    @staticmethod
    def get_dealer_queue(actor, status=TransactionStatus.PENDING.value):
        ensure_can(actor, 'dealer_review')
        query = Transaction.query.filter_by(dealer_id=actor.id, type=TransactionType.EARNED.value)
        if status and status != 'all':
            try:
                status = TransactionStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown status: {status}")
            query = query.filter_by(status=status)
        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    @staticmethod
    def get_dealer_stats(actor):
        ensure_can(actor, 'dealer_review')
        start_of_day = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

        pending = Transaction.query.filter_by(
            dealer_id=actor.id,
            type=TransactionType.EARNED.value,
            status=TransactionStatus.PENDING.value
        ).count()
        approved_today = DealerApproval.query.filter(
            DealerApproval.dealer_id == actor.id,
            DealerApproval.created_at >= start_of_day
        ).count()
        total_points = db.session.query(func.coalesce(func.sum(DealerApproval.amount), 0)).filter(
            DealerApproval.dealer_id == actor.id,
            DealerApproval.status == 'approved'
        ).scalar()

        return {
            'pending_approvals': pending,
            'approved_today': approved_today,
            'total_points_approved': int(total_points)
        }

    @staticmethod
    def get_admin_queue(actor, filter='pending_points'):
        ensure_can(actor, 'admin_review')
        if filter not in ADMIN_QUEUE_FILTERS:
            raise ValidationError(f"Unknown filter: {filter}")

        query = Transaction.query
        if filter == 'pending_points':
            query = query.filter(Transaction.type == TransactionType.EARNED.value,
                                 Transaction.status.in_(OPEN_STATUSES))
        elif filter == 'pending_redemptions':
            query = query.filter(Transaction.type == TransactionType.REDEEMED.value,
                                 Transaction.status.in_(OPEN_STATUSES))
        elif filter == 'open':
            query = query.filter(Transaction.status.in_(OPEN_STATUSES))
        elif filter != 'all':
            query = query.filter(Transaction.status == filter)

        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    @staticmethod
    def get_admin_stats(actor):
        ensure_can(actor, 'admin_review')
        rows = db.session.query(Transaction.type, Transaction.status, func.count(Transaction.id))\
            .filter(Transaction.status.in_(OPEN_STATUSES))\
            .group_by(Transaction.type, Transaction.status).all()

        stats = {'pending_points': 0, 'pending_redemptions': 0, 'dealer_approved': 0}
        for type, status, count in rows:
            if type == TransactionType.EARNED.value:
                stats['pending_points'] += count
            else:
                stats['pending_redemptions'] += count
            if status == TransactionStatus.DEALER_APPROVED.value:
                stats['dealer_approved'] += count
        return stats
