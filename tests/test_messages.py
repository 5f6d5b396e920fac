import json
from datetime import timedelta

import pytest

from models import db, Message
from models.base import parse_uuid, utcnow
from utils.matching import record_decision
from utils.messaging import parse_since
from utils.notifier import MatchSubscription
from utils.streaming import MessageStream, format_event


@pytest.fixture
def match_id(make_snack):
    mochi = make_snack('alice', 'Mochi')
    chips = make_snack('bob', 'Chips')
    make_snack('carol', 'Alfajores')

    record_decision('bob', mochi, True)
    _, match, _ = record_decision('alice', chips, True)
    return str(match.id)


def _polling(match_id):
    return MatchSubscription(None, f'matches:{match_id}:messages')


def _parse_event(frame):
    lines = frame.strip().split('\n')
    assert lines[0].startswith('event: ')
    assert lines[1].startswith('data: ')
    return lines[0][len('event: '):], json.loads(lines[1][len('data: '):])


def test_send_and_read_messages(client, auth, match_id):
    response = client.post(f'/matches/{match_id}/messages', json={'content': '  swap?  '}, headers=auth('alice'))

    assert response.status_code == 201
    sent = response.get_json()['data']
    assert sent['content'] == 'swap?'
    assert sent['is_mine'] is True
    assert sent['is_read'] is False

    response = client.get(f'/matches/{match_id}/messages', headers=auth('bob'))

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['total'] == 1
    assert data['marked_read'] == 1
    assert data['messages'][0]['is_mine'] is False


def test_reading_marks_counterpart_messages_once(client, auth, match_id):
    client.post(f'/matches/{match_id}/messages', json={'content': 'one'}, headers=auth('alice'))
    client.post(f'/matches/{match_id}/messages', json={'content': 'two'}, headers=auth('alice'))
    client.post(f'/matches/{match_id}/messages', json={'content': 'mine'}, headers=auth('bob'))

    first = client.get(f'/matches/{match_id}/messages', headers=auth('bob')).get_json()['data']
    second = client.get(f'/matches/{match_id}/messages', headers=auth('bob')).get_json()['data']

    assert first['marked_read'] == 2
    assert second['marked_read'] == 0
    assert Message.query.filter_by(sender_id='alice', is_read=True).count() == 2
    # Bob reading never marks his own messages
    assert Message.query.filter_by(sender_id='bob', is_read=False).count() == 1


def test_since_filters_older_messages(client, auth, match_id):
    now = utcnow()
    db.session.add_all([
        Message(match_id=parse_uuid(match_id), sender_id='alice', content='old', created_at=now - timedelta(minutes=5)),
        Message(match_id=parse_uuid(match_id), sender_id='alice', content='new', created_at=now),
    ])
    db.session.commit()

    since = (now - timedelta(minutes=1)).isoformat() + 'Z'
    response = client.get(f'/matches/{match_id}/messages', query_string={'since': since}, headers=auth('bob'))

    contents = [msg['content'] for msg in response.get_json()['data']['messages']]
    assert contents == ['new']

    # An unparseable value is ignored
    response = client.get(f'/matches/{match_id}/messages?since=yesterday', headers=auth('bob'))
    contents = [msg['content'] for msg in response.get_json()['data']['messages']]
    assert contents == ['old', 'new']


def test_since_read_marks_only_returned_messages(client, auth, match_id):
    now = utcnow()
    old = Message(match_id=parse_uuid(match_id), sender_id='alice', content='old',
                  created_at=now - timedelta(minutes=5))
    new = Message(match_id=parse_uuid(match_id), sender_id='alice', content='new', created_at=now)
    db.session.add_all([old, new])
    db.session.commit()
    old_id, new_id = old.id, new.id

    since = (now - timedelta(minutes=1)).isoformat() + 'Z'
    response = client.get(f'/matches/{match_id}/messages', query_string={'since': since}, headers=auth('bob'))

    assert response.get_json()['data']['marked_read'] == 1
    db.session.expire_all()
    assert db.session.get(Message, old_id).is_read is False
    assert db.session.get(Message, new_id).is_read is True
    assert client.get('/messages/unread', headers=auth('bob')).get_json()['data']['total_unread'] == 1


def test_messages_require_participation_and_content(client, auth, match_id):
    assert client.get(f'/matches/{match_id}/messages', headers=auth('carol')).status_code == 404
    assert client.post(f'/matches/{match_id}/messages', json={'content': 'hi'},
                       headers=auth('carol')).status_code == 404
    assert client.post(f'/matches/{match_id}/messages', json={'content': '   '},
                       headers=auth('alice')).status_code == 400
    assert client.post(f'/matches/{match_id}/messages', json={}, headers=auth('alice')).status_code == 400


def test_unread_count_and_mark_read(client, auth, match_id):
    client.post(f'/matches/{match_id}/messages', json={'content': 'one'}, headers=auth('alice'))
    client.post(f'/matches/{match_id}/messages', json={'content': 'two'}, headers=auth('alice'))

    total = client.get('/messages/unread', headers=auth('bob')).get_json()['data']
    assert total == {'total_unread': 2}

    per_match = client.get(f'/messages/unread?match_id={match_id}', headers=auth('bob')).get_json()['data']
    assert per_match['unread_count'] == 2

    assert client.get(f'/messages/unread?match_id={match_id}', headers=auth('carol')).status_code == 404
    assert client.get('/messages/unread', headers=auth('alice')).get_json()['data']['total_unread'] == 0

    response = client.post(f'/matches/{match_id}/messages/read', headers=auth('bob'))
    assert response.get_json()['data']['marked_read'] == 2
    assert client.get('/messages/unread', headers=auth('bob')).get_json()['data']['total_unread'] == 0


def test_parse_since():
    assert parse_since(None) is None
    assert parse_since('not a date') is None
    assert parse_since('2024-05-01T10:00:00.000Z').isoformat() == '2024-05-01T10:00:00'
    assert parse_since('2024-05-01T12:00:00+02:00').isoformat() == '2024-05-01T10:00:00'


def test_format_event():
    assert format_event('heartbeat', {}) == 'event: heartbeat\ndata: {}\n\n'


def test_stream_emits_connected_then_messages_then_new_messages(app, match_id):
    match_uuid = parse_uuid(match_id)
    db.session.add(Message(match_id=match_uuid, sender_id='alice', content='hello'))
    db.session.commit()

    stream = iter(MessageStream(
        match_id=match_uuid,
        user_id='bob',
        subscribe=_polling,
        poll_interval=0,
        heartbeat_interval=3600,
    ))

    assert _parse_event(next(stream)) == ('connected', {})

    event, payload = _parse_event(next(stream))
    assert event == 'messages'
    assert [msg['content'] for msg in payload] == ['hello']
    assert payload[0]['is_mine'] is False
    assert Message.query.filter_by(is_read=False).count() == 0

    db.session.add(Message(match_id=match_uuid, sender_id='alice', content='still there?',
                           created_at=utcnow() + timedelta(seconds=1)))
    db.session.commit()

    event, payload = _parse_event(next(stream))
    assert event == 'messages'
    assert [msg['content'] for msg in payload] == ['still there?']

    stream.close()


def test_stream_sends_heartbeats(app, match_id):
    stream = iter(MessageStream(
        match_id=parse_uuid(match_id),
        user_id='bob',
        subscribe=_polling,
        poll_interval=0,
        heartbeat_interval=0,
    ))

    assert _parse_event(next(stream))[0] == 'connected'
    assert _parse_event(next(stream))[0] == 'heartbeat'
    stream.close()


def test_stream_stops_when_match_is_gone(client, auth, app, match_id):
    stream = iter(MessageStream(
        match_id=parse_uuid(match_id),
        user_id='bob',
        subscribe=_polling,
        poll_interval=0,
        heartbeat_interval=3600,
    ))
    assert _parse_event(next(stream))[0] == 'connected'

    client.delete(f'/matches/{match_id}', headers=auth('alice'))

    event, payload = _parse_event(next(stream))
    assert event == 'error'
    assert payload == {'error': 'Match no longer exists'}
    with pytest.raises(StopIteration):
        next(stream)


class FakePubSub:
    def __init__(self, notifications):
        self.notifications = list(notifications)
        self.closed = False

    def get_message(self, ignore_subscribe_messages=True, timeout=0):
        return self.notifications.pop(0) if self.notifications else None

    def unsubscribe(self, channel):
        pass

    def close(self):
        self.closed = True


def test_live_subscription_collapses_notification_bursts():
    pubsub = FakePubSub([{'type': 'message', 'data': '1'}, {'type': 'message', 'data': '2'}])
    subscription = MatchSubscription(pubsub, 'matches:1:messages')

    assert subscription.is_live
    # Both queued notifications collapse into one wake-up
    assert subscription.wait(0) is True
    assert subscription.wait(0) is False

    subscription.close()
    assert pubsub.closed
    assert not subscription.is_live


def test_stream_endpoint(client, auth, match_id):
    assert client.get(f'/matches/{match_id}/messages/stream', headers=auth('carol')).status_code == 404

    response = client.get(f'/matches/{match_id}/messages/sse', headers=auth('bob'), buffered=False)

    assert response.status_code == 200
    assert response.mimetype == 'text/event-stream'
    first = next(iter(response.response))
    first = first.decode() if isinstance(first, bytes) else first
    assert first == 'event: connected\ndata: {}\n\n'
    response.close()


def test_live_stream_picks_up_messages_without_a_notification(app, match_id):
    match_uuid = parse_uuid(match_id)
    silent = FakePubSub([])
    stream = iter(MessageStream(
        match_id=match_uuid,
        user_id='bob',
        subscribe=lambda match_id: MatchSubscription(silent, 'matches:1:messages'),
        poll_interval=0,
        heartbeat_interval=3600,
    ))
    assert _parse_event(next(stream))[0] == 'connected'

    # Published notification never arrives
    db.session.add(Message(match_id=match_uuid, sender_id='alice', content='lost ping'))
    db.session.commit()

    event, payload = _parse_event(next(stream))
    assert event == 'messages'
    assert [msg['content'] for msg in payload] == ['lost ping']
    stream.close()


def test_stream_subscribes_only_once_iterated(app, match_id):
    pubsub = FakePubSub([])
    opened = []

    def subscribe(match_id):
        opened.append(match_id)
        return MatchSubscription(pubsub, f'matches:{match_id}:messages')

    stream = MessageStream(
        match_id=parse_uuid(match_id),
        user_id='bob',
        subscribe=subscribe,
        poll_interval=0,
        heartbeat_interval=3600,
    )
    assert opened == []

    events = iter(stream)
    next(events)
    assert opened == [parse_uuid(match_id)]

    events.close()
    assert pubsub.closed
