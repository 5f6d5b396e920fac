import logging
from middleware.auth import clerk_required
from flask_restful import Resource
from models import db, User, Snack
from utils.response import success_response, error_response

logger = logging.getLogger(__name__)


class CurrentUserResource(Resource):
    """Resource for the current authenticated user"""

    @clerk_required
    def get(self, current_user):
        """Get current user's record"""
        try:
            user = db.session.get(User, current_user.id)
            if not user:
                logger.warning(f"User {current_user.id} not found")
                return error_response("User not found", 404)

            user_data = {
                'id': user.id,
                'name': user.name,
                'email': user.email,
                'avatar_url': user.avatar_url,
                'snack_count': Snack.query.filter_by(user_id=user.id).count(),
                'created_at': user.created_at.isoformat() if user.created_at else None,
            }

            return success_response(user_data, "User retrieved successfully")

        except Exception as e:
            logger.error(f"Error fetching user: {str(e)}")
            return error_response("Failed to fetch user", 500)
