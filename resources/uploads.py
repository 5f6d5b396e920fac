import logging
from middleware.auth import clerk_required
from flask_restful import Resource
from flask import request
from utils.response import success_response, error_response
from utils.storage import generate_file_key, validate_file, upload_file

logger = logging.getLogger(__name__)


class UploadResource(Resource):
    """Image upload to object storage"""

    @clerk_required
    def post(self, current_user):
        """
        Accept a multipart `file` field, store it and return its public URL.
        """
        file = request.files.get('file')
        if not file or not file.filename:
            return error_response("No file provided", 400)

        body = file.read()
        validation_error = validate_file(file.mimetype, len(body))
        if validation_error:
            return error_response(validation_error, 400)

        key = generate_file_key(file.filename)

        try:
            url = upload_file(
                body,
                key,
                file.mimetype,
                {
                    'user_id': current_user.id,
                    # S3 metadata must be ASCII
                    'original_name': file.filename.encode('ascii', 'ignore').decode('ascii')
                }
            )
        except Exception as e:
            logger.error(f"Error uploading file for user {current_user.id}: {str(e)}")
            return error_response("Failed to upload file", 500)

        return success_response({'url': url, 'key': key}, "File uploaded successfully", 201)
