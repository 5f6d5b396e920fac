import logging
from middleware.auth import clerk_required
from flask_restful import Resource
from flask import request
from utils.errors import SwapError
from utils.matching import record_decision, undo_decision, decision_history, format_match
from utils.response import success_response, error_response, swap_error_response

logger = logging.getLogger(__name__)


class SwipeResource(Resource):
    """Like or pass on another user's snack (also served as /hearts)"""

    @clerk_required
    def post(self, current_user):
        """
        Record a decision. A like completes a match when the snack's owner
        already liked one of the current user's snacks.
        """
        try:
            data = request.get_json(silent=True)

            if not data:
                return error_response("No data provided", 400)

            snack_id = data.get('snack_id') or data.get('swipedSnackId') or data.get('heartedSnackId')
            liked = data.get('liked')

            if not snack_id or liked is None:
                return error_response("snack_id and liked are required", 400)

            if not isinstance(liked, bool):
                return error_response("liked must be a boolean", 400)

            swipe, match, created = record_decision(current_user.id, snack_id, liked)

            return success_response(
                {
                    'swipe': swipe.to_dict(),
                    'match': format_match(match, current_user.id) if match else None,
                    'is_match': match is not None
                },
                "It's a match!" if match else ("Swipe recorded" if created else "Swipe updated"),
                201 if created else 200
            )

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error processing swipe: {str(e)}")
            return error_response("Failed to process swipe", 500)


class SwipeHistoryResource(Resource):
    """The current user's past decisions"""

    @clerk_required
    def get(self, current_user):
        try:
            history = decision_history(current_user.id)
            return success_response(
                {'history': history, 'total': len(history)},
                "Swipe history retrieved successfully"
            )

        except Exception as e:
            logger.error(f"Error fetching swipe history: {str(e)}")
            return error_response("Failed to fetch swipe history", 500)

    @clerk_required
    def delete(self, current_user):
        """Undo a decision given as a `swipe_id` query parameter"""
        swipe_id = request.args.get('swipe_id') or request.args.get('swipeId')

        if not swipe_id:
            return error_response("Swipe ID is required", 400)

        return _undo(current_user, swipe_id)


class SwipeHistoryItemResource(Resource):
    """A single past decision"""

    @clerk_required
    def delete(self, swipe_id, current_user):
        """Undo the decision and any match that depended on it"""
        return _undo(current_user, swipe_id)


def _undo(current_user, swipe_id):
    try:
        undo_decision(current_user.id, swipe_id)
        return success_response({'undone': True}, "Swipe undone")

    except SwapError as e:
        return swap_error_response(e)
    except Exception as e:
        logger.error(f"Error undoing swipe {swipe_id}: {str(e)}")
        return error_response("Failed to undo swipe", 500)
