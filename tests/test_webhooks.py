import json
import uuid
from datetime import datetime, timezone

import pytest
from svix.webhooks import Webhook

import resources.webhooks as webhook_resources
from config import TestingConfig
from models import db, User, Snack, Swipe
from utils.matching import record_decision


def _post_event(client, event, secret=TestingConfig.CLERK_WEBHOOK_SECRET):
    payload = json.dumps(event)
    msg_id = f"msg_{uuid.uuid4().hex}"
    timestamp = datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, timestamp, payload)

    return client.post(
        '/webhooks/clerk',
        data=payload,
        content_type='application/json',
        headers={
            'svix-id': msg_id,
            'svix-timestamp': str(int(timestamp.timestamp())),
            'svix-signature': signature,
        }
    )


@pytest.fixture
def deleted_images(monkeypatch):
    deleted = []
    monkeypatch.setattr(
        webhook_resources, 'delete_image_for_url',
        lambda url, owner_id=None: deleted.append((url, owner_id)) or True
    )
    return deleted


def test_user_created_and_updated(client):
    response = _post_event(client, {
        'type': 'user.created',
        'data': {
            'id': 'user_123',
            'first_name': 'Ada',
            'last_name': 'Lovelace',
            'email_addresses': [{'email_address': 'ada@example.com'}],
            'image_url': 'https://img.clerk.com/ada.png',
        }
    })

    assert response.status_code == 200
    user = db.session.get(User, 'user_123')
    assert user.name == 'Ada Lovelace'
    assert user.email == 'ada@example.com'
    assert user.avatar_url == 'https://img.clerk.com/ada.png'

    response = _post_event(client, {
        'type': 'user.updated',
        'data': {'id': 'user_123', 'username': 'ada', 'email_addresses': []}
    })

    assert response.status_code == 200
    db.session.expire_all()
    user = db.session.get(User, 'user_123')
    assert user.name == 'ada'
    assert user.email == 'ada@example.com'


def test_user_deleted_purges_everything(client, make_snack, deleted_images):
    mochi = make_snack('alice', 'Mochi')
    chips = make_snack('bob', 'Chips')
    record_decision('bob', mochi, True)
    record_decision('alice', chips, True)

    response = _post_event(client, {'type': 'user.deleted', 'data': {'id': 'alice'}})

    assert response.status_code == 200
    assert db.session.get(User, 'alice') is None
    assert Snack.query.filter_by(user_id='alice').count() == 0
    assert Swipe.query.count() == 0
    assert deleted_images == [('https://pub-test.r2.dev/uploads/mochi.png', 'alice')]

    response = _post_event(client, {'type': 'user.deleted', 'data': {'id': 'alice'}})
    assert response.get_json()['data'] == {'status': 'already_deleted'}


def test_invalid_signature_is_rejected(client):
    response = _post_event(
        client,
        {'type': 'user.created', 'data': {'id': 'user_123'}},
        secret='whsec_' + 'c29tZS1vdGhlci1zZWNyZXQ='
    )

    assert response.status_code == 400
    assert db.session.get(User, 'user_123') is None


def test_unknown_events_are_ignored(client):
    response = _post_event(client, {'type': 'session.created', 'data': {'id': 'sess_1'}})

    assert response.status_code == 200
    assert response.get_json()['data'] == {'status': 'ignored'}


def test_event_body_is_read_from_the_verified_payload(client):
    response = _post_event(client, {'type': 'user.created', 'data': None})

    assert response.status_code == 400
    assert response.get_json()['error']['message'] == 'Missing user ID'
