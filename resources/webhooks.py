import json
import logging
from flask import request, current_app
from flask_restful import Resource
from svix.webhooks import Webhook, WebhookVerificationError
from models import db, User
from utils.matching import purge_user
from utils.response import success_response, error_response
from utils.storage import delete_image_for_url

logger = logging.getLogger(__name__)


class ClerkWebhook(Resource):
    """Handle Clerk webhook events"""

    def post(self):
        """Process Clerk webhook events"""
        try:
            webhook_secret = current_app.config.get("CLERK_WEBHOOK_SECRET")
            if not webhook_secret:
                logger.error("CLERK_WEBHOOK_SECRET is missing")
                return error_response("Server misconfigured", 500)

            payload = request.get_data()
            headers = dict(request.headers)

            # Verify webhook signature
            try:
                wh = Webhook(webhook_secret)
                wh.verify(payload, headers)
            except WebhookVerificationError:
                logger.warning("Webhook signature verification failed")
                return error_response("Invalid signature", 400)

            # verify() returns None on svix 2.x, so the body is parsed here
            try:
                data = json.loads(payload)
            except ValueError:
                return error_response("Invalid payload", 400)

            if not isinstance(data, dict):
                return error_response("Invalid payload", 400)

            event_type = data.get("type") or ""
            user_data = data.get("data") or {}

            logger.info("Processing Clerk webhook event: %s", event_type)

            # Process different event types
            handler = getattr(self, f"_handle_{event_type.replace('.', '_')}", None)
            if handler:
                return handler(user_data)
            else:
                logger.info("Unhandled event type: %s", event_type)
                return success_response({"status": "ignored"}, "Event ignored")

        except Exception:
            db.session.rollback()
            logger.exception("Unhandled error in Clerk webhook")
            return error_response("Internal server error", 500)

    def _handle_user_created(self, user_data: dict):
        """Handle user.created event"""
        return self._upsert_user(user_data, "created")

    def _handle_user_updated(self, user_data: dict):
        """Handle user.updated event"""
        return self._upsert_user(user_data, "updated")

    def _upsert_user(self, user_data: dict, status: str):
        user_id = user_data.get("id")
        if not user_id:
            return error_response("Missing user ID", 400)

        try:
            user = db.session.get(User, user_id)
            if user is None:
                user = User(id=user_id)
                db.session.add(user)

            user.name = self._extract_name(user_data)
            user.email = self._extract_email(user_data) or user.email
            image_url = user_data.get("image_url") or user_data.get("profile_image_url")
            if image_url:
                user.avatar_url = image_url

            db.session.commit()
            logger.info("User %s %s from webhook", user_id, status)

            return success_response({"status": status}, f"User {status} successfully")

        except Exception as e:
            db.session.rollback()
            logger.error("Error saving user %s: %s", user_id, str(e))
            return error_response("Database error", 500)

    def _handle_user_deleted(self, user_data: dict):
        """Handle user.deleted event"""
        user_id = user_data.get("id")
        if not user_id:
            return error_response("Missing user ID", 400)

        if not db.session.get(User, user_id):
            logger.warning("User %s not found for deletion", user_id)
            return success_response({"status": "already_deleted"}, "User already deleted")

        try:
            image_urls = purge_user(user_id)
        except Exception as e:
            logger.error("Error deleting user %s: %s", user_id, str(e))
            return error_response("Database error", 500)

        for image_url in image_urls:
            delete_image_for_url(image_url, user_id)

        return success_response({"status": "deleted"}, "User deleted successfully")

    def _extract_email(self, user_data: dict) -> str:
        """Extract primary email from user data"""
        if user_data.get("email_addresses"):
            return user_data["email_addresses"][0].get("email_address")
        return ""

    def _extract_name(self, user_data: dict) -> str:
        """Extract full name from user data"""
        first_name = user_data.get("first_name") or ""
        last_name = user_data.get("last_name") or ""
        name = (first_name + " " + last_name).strip()
        return name or user_data.get("username") or "Unknown User"
