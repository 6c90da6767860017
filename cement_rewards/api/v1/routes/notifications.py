from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from ....services.notification import NotificationService

bp = Blueprint('notifications_api', __name__)

@bp.route('', methods=['GET'])
@login_required
def list_notifications():
    unread_only = request.args.get('unread', 'false').lower() == 'true'
    notifications = NotificationService.get_user_notifications(
        current_user.id,
        unread_only=unread_only,
        limit=current_app.config['ITEMS_PER_PAGE']
    )
    return jsonify({
        'notifications': [n.to_dict() for n in notifications],
        'unread_count': NotificationService.unread_count(current_user.id)
    }), 200

@bp.route('/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_read(notification_id):
    notification = NotificationService.mark_as_read(notification_id, current_user.id)
    return jsonify(notification.to_dict()), 200

@bp.route('/read-all', methods=['POST'])
@login_required
def mark_all_read():
    updated = NotificationService.mark_all_as_read(current_user.id)
    return jsonify({'success': True, 'updated': updated}), 200
