from flask import Blueprint, jsonify, request
from flask_login import current_user
from ....decorators import capability_required
from ....services.approval import ApprovalService

bp = Blueprint('approvals_api', __name__)

# Dealer review

@bp.route('/dealer', methods=['GET'])
@capability_required('dealer_review')
def dealer_queue():
    transactions = ApprovalService.get_dealer_queue(current_user, request.args.get('status', 'pending'))
    return jsonify([tx.to_dict() for tx in transactions]), 200

@bp.route('/dealer/stats', methods=['GET'])
@capability_required('dealer_review')
def dealer_stats():
    return jsonify(ApprovalService.get_dealer_stats(current_user)), 200

@bp.route('/dealer/<int:transaction_id>/approve', methods=['POST'])
@capability_required('dealer_review')
def dealer_approve(transaction_id):
    """Confirm a purchase and send it to admin"""
    transaction = ApprovalService.dealer_approve(transaction_id, current_user)
    return jsonify(transaction.to_dict()), 200

@bp.route('/dealer/<int:transaction_id>/reject', methods=['POST'])
@capability_required('dealer_review')
def dealer_reject(transaction_id):
    transaction = ApprovalService.dealer_reject(transaction_id, current_user)
    return jsonify(transaction.to_dict()), 200

# Admin review

@bp.route('/admin', methods=['GET'])
@capability_required('admin_review')
def admin_queue():
    transactions = ApprovalService.get_admin_queue(current_user, request.args.get('filter', 'pending_points'))
    return jsonify([tx.to_dict() for tx in transactions]), 200

@bp.route('/admin/stats', methods=['GET'])
@capability_required('admin_review')
def admin_stats():
    return jsonify(ApprovalService.get_admin_stats(current_user)), 200

@bp.route('/admin/<int:transaction_id>/approve', methods=['POST'])
@capability_required('admin_review')
def admin_approve(transaction_id):
    transaction = ApprovalService.admin_approve(transaction_id, current_user)
    return jsonify(transaction.to_dict()), 200

@bp.route('/admin/<int:transaction_id>/reject', methods=['POST'])
@capability_required('admin_review')
def admin_reject(transaction_id):
    """Reject a request; redemptions are refunded"""
    transaction = ApprovalService.admin_reject(transaction_id, current_user)
    return jsonify(transaction.to_dict()), 200

@bp.route('/admin/<int:transaction_id>/complete', methods=['POST'])
@capability_required('admin_review')
def admin_complete(transaction_id):
    """Mark an approved redemption as dispatched"""
    transaction = ApprovalService.mark_completed(transaction_id, current_user)
    return jsonify(transaction.to_dict()), 200
