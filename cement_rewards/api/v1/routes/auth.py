from flask import Blueprint, jsonify, request, current_app
from flask_login import login_user, logout_user, login_required, current_user
from ....forms import LoginForm, RegisterForm
from ....services.user import UserService

bp = Blueprint('auth_api', __name__)

def form_errors(form):
    return jsonify({'error': 'Invalid request', 'errors': form.errors}), 400

@bp.route('/register', methods=['POST'])
def register():
    """Create a buyer or dealer account"""
    form = RegisterForm()
    if not form.validate():
        return form_errors(form)

    user = UserService.register_user(
        email=form.email.data,
        password=form.password.data,
        first_name=form.first_name.data,
        last_name=form.last_name.data,
        role=form.role.data,
        district=form.district.data,
        city=form.city.data,
        address=form.address.data,
        mobile_number=form.mobile_number.data,
        gst_number=form.gst_number.data
    )
    login_user(user)
    return jsonify(user.to_dict()), 201

@bp.route('/login', methods=['POST'])
def login():
    form = LoginForm()
    if not form.validate():
        return form_errors(form)

    user = UserService.authenticate(form.email.data, form.password.data)
    if not user:
        current_app.logger.warning(f"Failed login for {form.email.data}")
        return jsonify({'error': 'Invalid email or password'}), 401

    login_user(user, remember=form.remember.data)
    return jsonify(user.to_dict()), 200

@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True}), 200

@bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(current_user.to_dict()), 200

@bp.route('/me', methods=['PUT'])
@login_required
def update_profile():
    """Edit the current user's name and contact details"""
    user = UserService.update_profile(current_user._get_current_object(), request.get_json(silent=True))
    return jsonify(user.to_dict()), 200
