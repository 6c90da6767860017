from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from ....decorators import capability_required
from ....forms import EarnPointsForm
from ....services.points import PointService, calculate_points, validate_bag_count
from ....exceptions import InvalidBagCountError
from .auth import form_errors

bp = Blueprint('points_api', __name__)

@bp.route('/calculate', methods=['GET'])
@login_required
def calculate():
    """Preview the points a purchase would earn"""
    try:
        bags = int(request.args.get('bags', ''))
    except ValueError:
        raise InvalidBagCountError("Bag count must be a positive whole number")
    validate_bag_count(bags)
    cement_type = request.args.get('cement_type', 'PPC')
    return jsonify({
        'bags': bags,
        'cement_type': cement_type.upper(),
        'points': calculate_points(bags, cement_type)
    }), 200

@bp.route('/requests', methods=['POST'])
@capability_required('submit_earn_request')
def submit_request():
    """Submit an earned-points request to a dealer"""
    form = EarnPointsForm()
    if not form.validate():
        return form_errors(form)

    transaction = PointService.submit_earn_request(
        requester=current_user,
        dealer_id=form.dealer_id.data,
        cement_type=form.cement_type.data,
        bag_count=form.bag_count.data
    )
    return jsonify(transaction.to_dict()), 201

@bp.route('/dealers', methods=['GET'])
@capability_required('submit_earn_request')
def list_dealers():
    """Dealers in the current user's district"""
    dealers = PointService.get_district_dealers(current_user)
    return jsonify([dealer.to_public_dict() for dealer in dealers]), 200

@bp.route('/summary', methods=['GET'])
@login_required
def get_points_summary():
    """Get user's points summary"""
    summary = PointService.get_user_points_summary(current_user.id)
    return jsonify(summary), 200

@bp.route('/transactions', methods=['GET'])
@login_required
def list_transactions():
    """Transaction history of the current user"""
    transactions = PointService.get_user_transactions(
        current_user.id,
        type=request.args.get('type'),
        status=request.args.get('status')
    )
    return jsonify([tx.to_dict() for tx in transactions]), 200
