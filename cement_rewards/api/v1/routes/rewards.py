from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from ....decorators import capability_required
from ....forms import RewardForm
from ....services.reward import RewardService
from .auth import form_errors

bp = Blueprint('rewards_api', __name__)

@bp.route('', methods=['GET'])
@login_required
def list_rewards():
    """List rewards available to the current user"""
    rewards = RewardService.get_available_rewards(current_user)
    return jsonify([reward.to_dict() for reward in rewards]), 200

@bp.route('/<int:reward_id>/redeem', methods=['POST'])
@capability_required('redeem_reward')
def redeem_reward(reward_id):
    """Redeem a reward; points are reserved until an admin decides"""
    transaction = RewardService.redeem_reward(current_user, reward_id)
    return jsonify(transaction.to_dict()), 201

@bp.route('/all', methods=['GET'])
@capability_required('manage_rewards')
def list_all_rewards():
    rewards = RewardService.get_all_rewards(current_user)
    return jsonify([reward.to_dict() for reward in rewards]), 200

@bp.route('', methods=['POST'])
@capability_required('manage_rewards')
def create_reward():
    """Create a new reward"""
    form = RewardForm()
    if not form.validate():
        return form_errors(form)

    data = request.get_json(silent=True) or {}
    reward = RewardService.create_reward(
        current_user,
        title=form.title.data,
        points_required=form.points_required.data,
        description=form.description.data,
        image_url=form.image_url.data,
        # BooleanField reads a missing key as False
        available=form.available.data if 'available' in data else True,
        visible_to=form.visible_to.data,
        expiry_date=form.expiry_date.data
    )
    return jsonify(reward.to_dict()), 201

@bp.route('/<int:reward_id>', methods=['PUT'])
@capability_required('manage_rewards')
def update_reward(reward_id):
    """Update reward details"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400

    reward = RewardService.update_reward(current_user, reward_id, data)
    return jsonify(reward.to_dict()), 200

@bp.route('/orders', methods=['GET'])
@capability_required('manage_rewards')
def order_summary():
    """Redemptions per reward awaiting or done dispatch"""
    return jsonify(RewardService.get_order_summary(current_user)), 200
