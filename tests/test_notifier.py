from unittest.mock import Mock

import redis

from utils.notifier import MessageNotifier, build_channel


def test_notifier_without_redis_falls_back_to_polling(app):
    notifier = MessageNotifier()
    notifier.init_app(app)

    assert not notifier.is_available()
    assert notifier.publish('m1', 'msg1') is False
    assert not notifier.subscribe('m1').is_live


def test_publish_and_subscribe_use_the_match_channel():
    notifier = MessageNotifier()
    notifier.client = Mock()

    assert notifier.publish('m1', 'msg1') is True
    notifier.client.publish.assert_called_once_with('matches:m1:messages', 'msg1')

    subscription = notifier.subscribe('m1')
    assert subscription.is_live
    assert subscription.channel == build_channel('m1')
    notifier.client.pubsub.return_value.subscribe.assert_called_once_with('matches:m1:messages')


def test_redis_errors_never_reach_the_caller():
    notifier = MessageNotifier()
    notifier.client = Mock()
    notifier.client.publish.side_effect = redis.ConnectionError('down')
    notifier.client.pubsub.side_effect = redis.ConnectionError('down')

    assert notifier.publish('m1', 'msg1') is False
    assert not notifier.subscribe('m1').is_live


def test_subscription_error_degrades_to_polling():
    pubsub = Mock()
    pubsub.get_message.side_effect = redis.ConnectionError('down')
    subscription = build_subscription(pubsub)

    assert subscription.wait(0) is True
    assert not subscription.is_live


def build_subscription(pubsub):
    notifier = MessageNotifier()
    notifier.client = Mock()
    notifier.client.pubsub.return_value = pubsub
    return notifier.subscribe('m1')
