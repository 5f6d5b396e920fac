import logging
from middleware.auth import clerk_required
from flask_restful import Resource
from flask import request, current_app
from models import db, Snack
from utils.errors import SwapError
from utils.matching import get_feed, get_owned_snack, delete_snack
from utils.response import success_response, error_response, swap_error_response
from utils.storage import delete_image_for_url

logger = logging.getLogger(__name__)

SNACK_FIELDS = ('name', 'description', 'location', 'image_url')


def _snack_fields(data):
    """Pull the four required fields from a JSON body; None when any is missing."""
    if not data:
        return None

    values = {
        'name': data.get('name'),
        'description': data.get('description'),
        'location': data.get('location'),
        'image_url': data.get('image_url') or data.get('imageUrl'),
    }

    if not all(isinstance(values[field], str) and values[field].strip() for field in SNACK_FIELDS):
        return None

    return {field: value.strip() for field, value in values.items()}


class SnackListResource(Resource):
    """The current user's snacks"""

    @clerk_required
    def get(self, current_user):
        try:
            snacks = Snack.query.filter_by(user_id=current_user.id)\
                .order_by(Snack.created_at.desc())\
                .all()

            return success_response(
                {'snacks': [snack.to_dict() for snack in snacks], 'total': len(snacks)},
                "Snacks retrieved successfully"
            )

        except Exception as e:
            logger.error(f"Error fetching snacks: {str(e)}")
            return error_response("Failed to fetch snacks", 500)

    @clerk_required
    def post(self, current_user):
        try:
            fields = _snack_fields(request.get_json(silent=True))
            if not fields:
                return error_response("Missing required fields", 400)

            snack = Snack(user_id=current_user.id, **fields)
            db.session.add(snack)
            db.session.commit()

            logger.info(f"Snack {snack.id} created by {current_user.id}")
            return success_response(snack.to_dict(), "Snack created", 201)

        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating snack: {str(e)}")
            return error_response("Failed to create snack", 500)


class SnackResource(Resource):
    """A single snack owned by the current user"""

    @clerk_required
    def get(self, snack_id, current_user):
        try:
            snack = get_owned_snack(current_user.id, snack_id)
            return success_response(snack.to_dict(), "Snack retrieved successfully")

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error fetching snack {snack_id}: {str(e)}")
            return error_response("Failed to fetch snack", 500)

    @clerk_required
    def put(self, snack_id, current_user):
        try:
            fields = _snack_fields(request.get_json(silent=True))
            if not fields:
                return error_response("Missing required fields", 400)

            snack = get_owned_snack(current_user.id, snack_id)
            for field, value in fields.items():
                setattr(snack, field, value)

            db.session.commit()
            logger.info(f"Snack {snack.id} updated by {current_user.id}")

            return success_response(snack.to_dict(), "Snack updated successfully")

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error updating snack {snack_id}: {str(e)}")
            return error_response("Failed to update snack", 500)

    @clerk_required
    def delete(self, snack_id, current_user):
        try:
            image_url = delete_snack(current_user.id, snack_id)

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error deleting snack {snack_id}: {str(e)}")
            return error_response("Failed to delete snack", 500)

        # The record is gone; a leftover image is not worth failing the request
        delete_image_for_url(image_url, current_user.id)

        return success_response({'deleted': True}, "Snack deleted successfully")


class SnackFeedResource(Resource):
    """Snacks the current user has not swiped on yet"""

    @clerk_required
    def get(self, current_user):
        try:
            page_size = current_app.config['FEED_PAGE_SIZE']
            max_page_size = current_app.config['FEED_MAX_PAGE_SIZE']

            limit = request.args.get('limit', type=int, default=page_size)
            if limit < 1:
                return error_response("limit must be a positive integer", 400)
            limit = min(limit, max_page_size)

            snacks = get_feed(current_user.id, limit)

            return success_response(
                {'snacks': [snack.to_dict() for snack in snacks], 'total': len(snacks)},
                "Feed retrieved successfully"
            )

        except Exception as e:
            logger.error(f"Error fetching snack feed: {str(e)}")
            return error_response("Failed to fetch snack feed", 500)
