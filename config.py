import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///swapsnack.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Clerk
    CLERK_FRONTEND_API = os.getenv('CLERK_FRONTEND_API')
    CLERK_JWT_AUDIENCE = os.getenv('CLERK_JWT_AUDIENCE')
    CLERK_WEBHOOK_SECRET = os.getenv('CLERK_WEBHOOK_SECRET', '')

    # Redis pub/sub for message notifications; streams poll without it
    REDIS_URL = os.getenv('REDIS_URL')

    # Cloudflare R2 (S3 compatible)
    CLOUDFLARE_ACCOUNT_ID = os.getenv('CLOUDFLARE_ACCOUNT_ID')
    CLOUDFLARE_ACCESS_KEY_ID = os.getenv('CLOUDFLARE_ACCESS_KEY_ID')
    CLOUDFLARE_SECRET_ACCESS_KEY = os.getenv('CLOUDFLARE_SECRET_ACCESS_KEY')
    CLOUDFLARE_R2_BUCKET = os.getenv('CLOUDFLARE_R2_BUCKET')
    CLOUDFLARE_PUBLIC_URL = os.getenv('CLOUDFLARE_PUBLIC_URL')
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', 20 * 1024 * 1024))

    FEED_PAGE_SIZE = int(os.getenv('FEED_PAGE_SIZE', 10))
    FEED_MAX_PAGE_SIZE = int(os.getenv('FEED_MAX_PAGE_SIZE', 50))

    # Seconds
    MESSAGE_POLL_INTERVAL = float(os.getenv('MESSAGE_POLL_INTERVAL', 3))
    STREAM_HEARTBEAT_INTERVAL = float(os.getenv('STREAM_HEARTBEAT_INTERVAL', 30))


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    REDIS_URL = None
    CLERK_FRONTEND_API = 'clerk.test.local'
    CLERK_JWT_AUDIENCE = None
    CLERK_WEBHOOK_SECRET = 'whsec_' + 'dGVzdC13ZWJob29rLXNlY3JldA=='
    CLOUDFLARE_R2_BUCKET = 'snacks'
    CLOUDFLARE_PUBLIC_URL = 'https://pub-test.r2.dev'
    MESSAGE_POLL_INTERVAL = 0
    STREAM_HEARTBEAT_INTERVAL = 0
