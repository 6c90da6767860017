from datetime import date
from flask import current_app
from sqlalchemy import func
from ..models.reward import Reward
from ..models.transaction import Transaction, TransactionType, TransactionStatus
from ..permissions import ensure_can, BUYER_ROLES
from ..exceptions import NotFoundError, ValidationError
from .. import db
from .ledger import atomic, debit
from .notification import NotificationService

EDITABLE_FIELDS = ('title', 'description', 'image_url', 'points_required',
                   'available', 'visible_to', 'expiry_date')

class RewardService:
    """Service for handling reward-related operations"""

    @staticmethod
    def _validate_fields(fields):
        if 'points_required' in fields:
            points = fields['points_required']
            if isinstance(points, bool) or not isinstance(points, int) or points < 1:
                raise ValidationError("Points required must be a positive whole number")
        for key in ('title', 'description', 'image_url'):
            if fields.get(key) is not None and not isinstance(fields[key], str):
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} must be text")
        if 'title' in fields and not (fields['title'] or '').strip():
            raise ValidationError("Title is required")
        if 'available' in fields and not isinstance(fields['available'], bool):
            raise ValidationError("Available must be true or false")
        if fields.get('visible_to'):
            if not isinstance(fields['visible_to'], (list, tuple)):
                raise ValidationError("Visible to must be a list of roles")
            unknown = [str(r) for r in fields['visible_to'] if r not in BUYER_ROLES]
            if unknown:
                raise ValidationError(f"Unknown roles: {', '.join(unknown)}")
        expiry_date = fields.get('expiry_date')
        if isinstance(expiry_date, str):
            try:
                fields['expiry_date'] = date.fromisoformat(expiry_date)
            except ValueError:
                raise ValidationError("Expiry date must be YYYY-MM-DD")
        elif expiry_date is not None and not isinstance(expiry_date, date):
            raise ValidationError("Expiry date must be YYYY-MM-DD")

    @staticmethod
    def create_reward(actor, title, points_required, description=None, image_url=None,
                      available=True, visible_to=None, expiry_date=None):
        """Create a new reward"""
        ensure_can(actor, 'manage_rewards')
        fields = {
            'title': title,
            'points_required': points_required,
            'description': description,
            'image_url': image_url,
            'available': available,
            'visible_to': list(visible_to or []),
            'expiry_date': expiry_date
        }
        RewardService._validate_fields(fields)

        reward = Reward(**fields)
        with atomic('reward creation'):
            db.session.add(reward)

        current_app.logger.info(f"Admin {actor.id} created reward {reward.id} ({reward.title})")
        return reward

    @staticmethod
    def update_reward(actor, reward_id, changes):
        """Update reward details"""
        ensure_can(actor, 'manage_rewards')
        reward = db.session.get(Reward, reward_id)
        if not reward:
            raise NotFoundError(f"Reward {reward_id} not found")

        if not isinstance(changes, dict):
            raise ValidationError("Reward changes must be an object")
        fields = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
        RewardService._validate_fields(fields)

        with atomic('reward update'):
            for key, value in fields.items():
                setattr(reward, key, value)
        return reward

    @staticmethod
    def get_available_rewards(user):
        """Rewards the user can see, cheapest first"""
        return Reward.get_catalogue_for(user)

    @staticmethod
    def get_all_rewards(actor):
        """Get all rewards for admin view"""
        ensure_can(actor, 'manage_rewards')
        return Reward.query.order_by(Reward.points_required.asc(), Reward.id.asc()).all()

    @staticmethod
    def redeem_reward(user, reward_id):
        """Spend points on a reward.

        Points are debited immediately; the pending redemption is then
        confirmed by an admin or rejected with a refund.
        """
        ensure_can(user, 'redeem_reward')
        reward = db.session.get(Reward, reward_id)
        if not reward:
            raise NotFoundError(f"Reward {reward_id} not found")
        if not reward.available:
            raise ValidationError("This reward is no longer available")
        if reward.is_expired():
            raise ValidationError("This reward has expired")
        if not reward.is_visible_to(user.role):
            raise ValidationError("This reward is not offered to your account type")

        transaction = Transaction(
            user_id=user.id,
            type=TransactionType.REDEEMED.value,
            amount=reward.points_required,
            description=f"Redeemed {reward.title}",
            status=TransactionStatus.PENDING.value,
            reward_id=reward.id
        )

        with atomic('reward redemption'):
            debit(user.id, reward.points_required)
            db.session.add(transaction)
            db.session.flush()
            NotificationService.notify(
                user.id,
                'Redemption requested',
                f"{reward.points_required} points were reserved for {reward.title}; an admin will confirm shortly",
                'reward'
            )

        current_app.logger.info(
            f"User {user.id} redeemed reward {reward.id} for {transaction.amount} points (transaction {transaction.id})"
        )
        return transaction

    @staticmethod
    def get_order_summary(actor):
        """Redemption counts per reward, for planning dispatch"""
        ensure_can(actor, 'manage_rewards')
        tracked = (TransactionStatus.PENDING.value, TransactionStatus.APPROVED.value,
                   TransactionStatus.COMPLETED.value)
        rows = db.session.query(
            Reward.id,
            Reward.title,
            Reward.points_required,
            Transaction.status,
            func.count(Transaction.id)
        ).join(Transaction, Transaction.reward_id == Reward.id)\
         .filter(Transaction.type == TransactionType.REDEEMED.value,
                 Transaction.status.in_(tracked))\
         .group_by(Reward.id, Reward.title, Reward.points_required, Transaction.status)\
         .all()

        summary = {}
        for reward_id, title, points_required, status, count in rows:
            item = summary.setdefault(reward_id, {
                'reward_id': reward_id,
                'title': title,
                'points_required': points_required,
                'pending': 0,
                'to_dispatch': 0,
                'completed_dispatch': 0
            })
            if status == TransactionStatus.PENDING.value:
                item['pending'] += count
            elif status == TransactionStatus.APPROVED.value:
                item['to_dispatch'] += count
            else:
                item['completed_dispatch'] += count

        return sorted(summary.values(), key=lambda item: item['title'])

    @staticmethod
    def initialize_reward_system():
        """Initialize or update reward catalogue"""
        try:
            Reward.initialize_defaults()
            return True
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error initializing reward system: {str(e)}")
            return False
