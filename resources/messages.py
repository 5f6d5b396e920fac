import logging
from middleware.auth import clerk_required
from flask_restful import Resource
from flask import request, current_app, Response, stream_with_context
from models import db
from utils.errors import SwapError
from utils.matching import get_user_match
from utils.messaging import (
    parse_since,
    read_messages,
    send_message,
    mark_read,
    unread_count
)
from utils.notifier import notifier
from utils.response import success_response, error_response, swap_error_response
from utils.streaming import MessageStream

logger = logging.getLogger(__name__)


class MatchMessagesResource(Resource):
    """Resource for the messages of a specific match"""

    @clerk_required
    def get(self, match_id, current_user):
        """
        Get messages for a match in chronological order, optionally only
        those after `since`. Marks the other user's messages as read.
        """
        try:
            since = parse_since(request.args.get('since'))
            messages, marked = read_messages(current_user.id, match_id, since)

            messages_data = [msg.to_json(current_user.id) for msg in messages]

            return success_response(
                {
                    'messages': messages_data,
                    'total': len(messages_data),
                    'marked_read': marked
                },
                "Messages retrieved successfully"
            )

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error fetching messages: {str(e)}")
            return error_response("Failed to fetch messages", 500)

    @clerk_required
    def post(self, match_id, current_user):
        """Send a message to the other participant"""
        try:
            data = request.get_json(silent=True) or {}
            message = send_message(current_user.id, match_id, data.get('content'))

            notifier.publish(message.match_id, message.id)

            return success_response(
                message.to_json(current_user.id),
                "Message sent successfully",
                201
            )

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error sending message: {str(e)}")
            return error_response("Failed to send message", 500)


class MatchMessageStreamResource(Resource):
    """Server-sent events for new messages in a match"""

    @clerk_required
    def get(self, match_id, current_user):
        try:
            match = get_user_match(current_user.id, match_id)
        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error opening message stream: {str(e)}")
            return error_response("Failed to open message stream", 500)

        since = parse_since(request.args.get('last_message_time') or request.args.get('lastMessageTime'))

        stream = MessageStream(
            match_id=match.id,
            user_id=current_user.id,
            subscribe=notifier.subscribe,
            since=since,
            poll_interval=current_app.config['MESSAGE_POLL_INTERVAL'],
            heartbeat_interval=current_app.config['STREAM_HEARTBEAT_INTERVAL'],
        )

        logger.info(f"Message stream opened for user {current_user.id} on match {match.id}")

        return Response(
            stream_with_context(iter(stream)),
            mimetype='text/event-stream',
            headers={
                'Cache-Control': 'no-cache, no-transform',
                'Connection': 'keep-alive',
                'X-Accel-Buffering': 'no',
            }
        )


class UnreadMessagesResource(Resource):
    """Resource for getting unread message count"""

    @clerk_required
    def get(self, current_user):
        """
        Get total unread message count for the current user.
        Optionally filter by match_id.
        """
        try:
            match_id = request.args.get('match_id')
            count = unread_count(current_user.id, match_id)

            if match_id:
                return success_response(
                    {'match_id': match_id, 'unread_count': count},
                    "Unread count retrieved"
                )

            return success_response(
                {'total_unread': count},
                "Total unread count retrieved"
            )

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            logger.error(f"Error fetching unread count: {str(e)}")
            return error_response("Failed to fetch unread count", 500)


class MarkMessagesReadResource(Resource):
    """Resource for marking messages as read"""

    @clerk_required
    def post(self, match_id, current_user):
        """Mark all messages sent to the current user in a match as read"""
        try:
            match = get_user_match(current_user.id, match_id)
            updated = mark_read(match.id, current_user.id)

            return success_response(
                {'marked_read': updated},
                f"Marked {updated} messages as read"
            )

        except SwapError as e:
            return swap_error_response(e)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error marking messages as read: {str(e)}")
            return error_response("Failed to mark messages as read", 500)
