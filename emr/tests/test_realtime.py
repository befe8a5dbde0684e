import json

import pytest
from asgiref.sync import async_to_sync

from emr.realtime.consumers import QueueBoardConsumer
from emr.services import queueing


class RecordingLayer:
    def __init__(self):
        self.groups = []
        self.sent = []

    async def group_add(self, group, channel):
        self.groups.append(group)

    async def group_discard(self, group, channel):
        self.groups.remove(group)

    async def group_send(self, group, message):
        self.sent.append((group, message))


def _consumer(kwargs=None):
    consumer = QueueBoardConsumer()
    consumer.scope = {'type': 'websocket', 'url_route': {'kwargs': kwargs or {}}}
    consumer.channel_layer = RecordingLayer()
    consumer.channel_name = 'test.channel'
    consumer.messages = []

    async def base_send(message):
        consumer.messages.append(message)

    consumer.base_send = base_send
    return consumer


def test_board_consumer_joins_all_queues_group():
    consumer = _consumer()
    async_to_sync(consumer.connect)()
    assert consumer.channel_layer.groups == ['queues']
    assert consumer.messages[0]['type'] == 'websocket.accept'
    assert json.loads(consumer.messages[1]['text']) == {'type': 'welcome', 'group': 'queues'}

    async_to_sync(consumer.disconnect)(1000)
    assert consumer.channel_layer.groups == []


def test_single_queue_consumer_forwards_updates():
    consumer = _consumer({'queue_id': 7})
    async_to_sync(consumer.connect)()
    assert consumer.channel_layer.groups == ['queue.7']

    event = {'type': 'queue.update', 'queueId': 7, 'action': 'called', 'ticketId': 1}
    async_to_sync(consumer.queue_update)(event)
    assert json.loads(consumer.messages[-1]['text']) == event


@pytest.mark.django_db
def test_broadcast_is_sent_after_commit(monkeypatch, django_capture_on_commit_callbacks, make_patient,
                                        reception, lab_queue):
    layer = RecordingLayer()
    monkeypatch.setattr(queueing, 'get_channel_layer', lambda: layer)
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        ticket = queueing.enqueue_patient(reception, make_patient(), lab_queue)
        assert layer.sent == []
    assert len(callbacks) == 1
    groups = [g for g, _ in layer.sent]
    assert groups == ['queues', f'queue.{lab_queue.id}']
    message = layer.sent[0][1]
    assert message['type'] == 'queue.update'
    assert message['action'] == 'enqueued'
    assert message['ticketId'] == ticket.id
    assert message['tokenNumber'] == 'L001'
