from flask import current_app
from ..models.notification import Notification, NOTIFICATION_TYPES
from ..exceptions import NotFoundError
from .. import db

class NotificationService:
    """In-app notifications shown to users after workflow steps"""

    @staticmethod
    def notify(user_id, title, message, type='info'):
        """Queue a notification in the current unit of work.

        Not committed here; it lands together with the step that caused it.
        """
        if type not in NOTIFICATION_TYPES:
            type = 'info'
        notification = Notification(user_id=user_id, title=title, message=message, type=type)
        db.session.add(notification)
        return notification

    @staticmethod
    def get_user_notifications(user_id, unread_only=False, limit=None):
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(read=False)
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def unread_count(user_id):
        return Notification.query.filter_by(user_id=user_id, read=False).count()

    @staticmethod
    def mark_as_read(notification_id, user_id):
        notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        notification.read = True
        db.session.commit()
        return notification

    @staticmethod
    def mark_all_as_read(user_id):
        updated = Notification.query.filter_by(user_id=user_id, read=False)\
            .update({'read': True}, synchronize_session=False)
        db.session.commit()
        current_app.logger.info(f"Marked {updated} notifications read for user {user_id}")
        return updated
