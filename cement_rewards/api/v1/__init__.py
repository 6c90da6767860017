from flask import Blueprint, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from ... import db
from ...exceptions import RewardsError
from .routes.auth import bp as auth_bp
from .routes.points import bp as points_bp
from .routes.approvals import bp as approvals_bp
from .routes.rewards import bp as rewards_bp
from .routes.users import bp as users_bp
from .routes.notifications import bp as notifications_bp

bp = Blueprint('api_v1', __name__, url_prefix='/api/v1')

# Register API route blueprints
bp.register_blueprint(auth_bp, url_prefix='/auth')
bp.register_blueprint(points_bp, url_prefix='/points')
bp.register_blueprint(approvals_bp, url_prefix='/approvals')
bp.register_blueprint(rewards_bp, url_prefix='/rewards')
bp.register_blueprint(users_bp, url_prefix='/users')
bp.register_blueprint(notifications_bp, url_prefix='/notifications')

ROUTE_BLUEPRINTS = (auth_bp, points_bp, approvals_bp, rewards_bp, users_bp, notifications_bp)

# Error handlers apply to every nested route blueprint
@bp.errorhandler(RewardsError)
def handle_rewards_error(e):
    return jsonify({'error': str(e)}), e.status_code

@bp.errorhandler(SQLAlchemyError)
def handle_database_error(e):
    db.session.rollback()
    current_app.logger.error(f"Unhandled database error: {str(e)}")
    return jsonify({'error': 'Internal server error'}), 500
