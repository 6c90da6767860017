from flask import Blueprint, jsonify, request
from flask_login import current_user
from ....decorators import capability_required
from ....forms import RoleForm, CustomerForm
from ....services.user import UserService
from .auth import form_errors

bp = Blueprint('users_api', __name__)

@bp.route('', methods=['GET'])
@capability_required('manage_users')
def list_users():
    users = UserService.list_users(current_user, role=request.args.get('role'))
    return jsonify([user.to_dict() for user in users]), 200

@bp.route('/<int:user_id>/role', methods=['PUT'])
@capability_required('manage_users')
def update_role(user_id):
    form = RoleForm()
    if not form.validate():
        return form_errors(form)

    user = UserService.update_role(current_user, user_id, form.role.data)
    return jsonify(user.to_dict()), 200

# Dealer customers

@bp.route('/customers', methods=['GET'])
@capability_required('manage_customers')
def list_customers():
    """Buyers in the dealer's district with summary counts"""
    customers, stats = UserService.get_dealer_customers(current_user)
    return jsonify({
        'customers': [customer.to_dict() for customer in customers],
        'stats': stats
    }), 200

@bp.route('/customers', methods=['POST'])
@capability_required('manage_customers')
def create_customer():
    form = CustomerForm()
    if not form.validate():
        return form_errors(form)

    customer = UserService.create_customer(
        current_user,
        email=form.email.data,
        password=form.password.data,
        first_name=form.first_name.data,
        last_name=form.last_name.data,
        role=form.role.data,
        city=form.city.data,
        address=form.address.data,
        mobile_number=form.mobile_number.data,
        gst_number=form.gst_number.data
    )
    return jsonify(customer.to_dict()), 201
