from flask import Flask
from flask_cors import CORS
from flask_restful import Api, Resource
from flask_migrate import Migrate
from models import db
from config import Config
from utils.notifier import notifier
import logging

migrate = Migrate()


class HealthCheck(Resource):
    def get(self):
        return {"status": "ok"}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    CORS(app)

    db.init_app(app)
    migrate.init_app(app, db)
    notifier.init_app(app)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )

    register_resources(Api(app))

    return app


def register_resources(api):
    from resources.webhooks import ClerkWebhook
    from resources.users import CurrentUserResource
    from resources.snacks import SnackListResource, SnackResource, SnackFeedResource
    from resources.swipes import SwipeResource, SwipeHistoryResource, SwipeHistoryItemResource
    from resources.match import UserMatchesResource, MatchDetailResource
    from resources.messages import (
        MatchMessagesResource,
        MatchMessageStreamResource,
        UnreadMessagesResource,
        MarkMessagesReadResource
    )
    from resources.uploads import UploadResource

    api.add_resource(HealthCheck, '/health')

    api.add_resource(ClerkWebhook, '/webhooks/clerk')
    api.add_resource(CurrentUserResource, '/users/me')

    # Snack routes
    api.add_resource(SnackListResource, '/snacks')
    api.add_resource(SnackFeedResource, '/snacks/feed')
    api.add_resource(SnackResource, '/snacks/<string:snack_id>')
    api.add_resource(UploadResource, '/upload')

    # Swipe routes (hearts are the same decisions under another name)
    api.add_resource(SwipeResource, '/swipes', '/hearts')
    api.add_resource(SwipeHistoryResource, '/swipes/history', '/hearts/history')
    api.add_resource(
        SwipeHistoryItemResource,
        '/swipes/history/<string:swipe_id>',
        '/hearts/history/<string:swipe_id>'
    )

    # Match routes
    api.add_resource(UserMatchesResource, '/matches')
    api.add_resource(MatchDetailResource, '/matches/<string:match_id>')

    # Message routes
    api.add_resource(MatchMessagesResource, '/matches/<string:match_id>/messages')
    api.add_resource(
        MatchMessageStreamResource,
        '/matches/<string:match_id>/messages/stream',
        '/matches/<string:match_id>/messages/sse'
    )
    api.add_resource(MarkMessagesReadResource, '/matches/<string:match_id>/messages/read')
    api.add_resource(UnreadMessagesResource, '/messages/unread')


app = create_app()

if __name__ == '__main__':
    app.run(debug=True, threaded=True)
