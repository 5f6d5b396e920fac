import logging
from middleware.auth import clerk_required
from flask_restful import Resource
from utils.errors import SwapError
from utils.matching import list_matches, get_user_match, format_match, unmatch
from utils.response import success_response, error_response, swap_error_response

logger = logging.getLogger(__name__)


class UserMatchesResource(Resource):
    """Resource for getting user's current matches"""

    @clerk_required
    def get(self, current_user):
        """Get all matches for the current user, oldest first"""
        try:
            matches = list_matches(current_user.id)
            matches_data = [format_match(match, current_user.id) for match in matches]

            return success_response(
                {'matches': matches_data, 'total': len(matches_data)},
                "Matches retrieved successfully"
            )

        except Exception as e:
            logger.error(f"Error fetching matches: {str(e)}")
            return error_response("Failed to fetch matches", 500)


class MatchDetailResource(Resource):
    """Resource for a specific match"""

    @clerk_required
    def get(self, match_id, current_user):
        """
        Get details of a specific match by match ID.
        Used for loading chat conversations.
        """
        try:
            match = get_user_match(current_user.id, match_id)
            return success_response(
                format_match(match, current_user.id),
                "Match details retrieved successfully"
            )

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error fetching match details: {str(e)}")
            return error_response("Failed to fetch match details", 500)

    @clerk_required
    def delete(self, match_id, current_user):
        """
        Unmatch: removes the match, its messages and every swipe either user
        made on the other's snacks, so the two can match again later.
        """
        try:
            unmatch(current_user.id, match_id)
            return success_response({'unmatched': True}, "Unmatched successfully")

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error deleting match {match_id}: {str(e)}")
            return error_response("Failed to delete match", 500)
