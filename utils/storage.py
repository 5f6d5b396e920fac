import logging
import secrets
import time
from typing import Optional

import boto3
from flask import current_app

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ['image/jpeg', 'image/png', 'image/webp', 'image/gif', 'image/avif']


def get_s3_client():
    """S3 client pointed at the Cloudflare R2 account endpoint."""
    config = current_app.config
    return boto3.client(
        's3',
        region_name='auto',
        endpoint_url=f"https://{config['CLOUDFLARE_ACCOUNT_ID']}.r2.cloudflarestorage.com",
        aws_access_key_id=config.get('CLOUDFLARE_ACCESS_KEY_ID') or '',
        aws_secret_access_key=config.get('CLOUDFLARE_SECRET_ACCESS_KEY') or '',
    )


def get_public_url(key: str) -> str:
    return f"{current_app.config['CLOUDFLARE_PUBLIC_URL'].rstrip('/')}/{key}"


def generate_file_key(file_name: str) -> str:
    """uploads/<epoch ms>-<random>.<ext>"""
    extension = file_name.rsplit('.', 1)[-1].lower() if '.' in file_name else 'bin'
    timestamp = int(time.time() * 1000)
    return f"uploads/{timestamp}-{secrets.token_hex(6)}.{extension}"


def validate_file(content_type: Optional[str], size: int) -> Optional[str]:
    """Returns an error message, or None when the file is acceptable."""
    max_size = current_app.config['MAX_UPLOAD_SIZE']

    if size > max_size:
        return f"File is too large. Maximum size is {max_size // (1024 * 1024)}MB."

    if content_type not in ALLOWED_IMAGE_TYPES:
        return "File type not supported. Please upload a JPEG, PNG, WebP, GIF, or AVIF image."

    return None


def upload_file(body: bytes, key: str, content_type: str, metadata: dict) -> str:
    """Store the object and return its public URL. Storage errors propagate."""
    get_s3_client().put_object(
        Bucket=current_app.config['CLOUDFLARE_R2_BUCKET'],
        Key=key,
        Body=body,
        ContentType=content_type,
        Metadata=metadata,
    )
    logger.info(f"Uploaded {key} ({len(body)} bytes)")
    return get_public_url(key)


def extract_key_from_url(url: str) -> Optional[str]:
    """Object key of a URL served from our public bucket URL; None for anything else."""
    public_url = (current_app.config.get('CLOUDFLARE_PUBLIC_URL') or '').rstrip('/')
    if not url or not public_url or not url.startswith(public_url + '/'):
        return None

    key = url[len(public_url) + 1:].split('?', 1)[0]
    return key or None


def delete_file(key: str) -> bool:
    """Best effort: failures are logged, never raised."""
    try:
        get_s3_client().delete_object(
            Bucket=current_app.config['CLOUDFLARE_R2_BUCKET'],
            Key=key,
        )
        logger.info(f"Deleted stored file {key}")
        return True
    except Exception as e:
        logger.error(f"Failed to delete stored file {key}: {str(e)}")
        return False


def uploaded_by(key: str) -> Optional[str]:
    """The user_id stored with the object at upload time, if any."""
    response = get_s3_client().head_object(
        Bucket=current_app.config['CLOUDFLARE_R2_BUCKET'],
        Key=key,
    )
    return (response.get('Metadata') or {}).get('user_id')


def delete_image_for_url(url: Optional[str], owner_id: Optional[str] = None) -> bool:
    """
    Best effort delete of one of our stored images.

    With `owner_id`, objects uploaded by another user are left alone.
    """
    key = extract_key_from_url(url) if url else None
    if not key:
        return False

    if owner_id is not None:
        try:
            uploader = uploaded_by(key)
        except Exception as e:
            logger.error(f"Failed to read metadata of stored file {key}: {str(e)}")
            return False

        if uploader and uploader != owner_id:
            logger.warning(f"Not deleting {key}: uploaded by {uploader}, not {owner_id}")
            return False

    return delete_file(key)
