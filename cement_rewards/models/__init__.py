from .user import User
from .transaction import Transaction, TransactionType, TransactionStatus, ALLOWED_TRANSITIONS
from .reward import Reward
from .dealer_approval import DealerApproval
from .notification import Notification

__all__ = [
    'User',
    'Transaction',
    'TransactionType',
    'TransactionStatus',
    'ALLOWED_TRANSITIONS',
    'Reward',
    'DealerApproval',
    'Notification'
]
