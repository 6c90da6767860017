from functools import wraps
from flask import jsonify, current_app, request
from flask_login import current_user
from .permissions import can

def capability_required(capability):
    """Guard an API view behind a capability from permissions.CAPABILITIES."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'error': 'Authentication required'}), 401
            if not can(current_user, capability):
                current_app.logger.warning(
                    f"User {current_user.id} ({current_user.role}) denied {capability} on {request.path}"
                )
                return jsonify({'error': 'You do not have permission to perform this action'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
