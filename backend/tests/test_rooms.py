from gamebrain.services.timeline import RoomRegistry


def test_subscribe_and_broadcast(sender):
    rooms = RoomRegistry(sender)
    rooms.subscribe('S1', 'a', 'past')
    rooms.subscribe('S1', 'b', 'future')
    rooms.subscribe('S2', 'c', 'present')

    assert rooms.broadcast('S1', 'state_updated', {'n': 1}) == 2
    assert sorted(h for h, _, _ in sender.sent) == ['a', 'b']
    assert rooms.members('S1') == {'a': 'past', 'b': 'future'}


def test_empty_room_is_dropped(sender):
    rooms = RoomRegistry(sender)
    rooms.subscribe('S1', 'a')
    assert rooms.rooms() == {'S1': 1}
    assert rooms.unsubscribe('S1', 'a') is True
    assert rooms.rooms() == {}
    assert rooms.unsubscribe('S1', 'a') is False
    assert rooms.broadcast('S1', 'state_updated', {}) == 0


def test_discard_finds_the_room(sender):
    rooms = RoomRegistry(sender)
    rooms.subscribe('S1', 'a')
    rooms.subscribe('S1', 'b')
    assert rooms.discard('a') == 'S1'
    assert rooms.discard('a') is None
    assert rooms.members('S1') == {'b': 'unknown'}


def test_resubscribing_moves_handle_between_rooms(sender):
    rooms = RoomRegistry(sender)
    rooms.subscribe('S1', 'a')
    rooms.subscribe('S2', 'a')
    assert rooms.rooms() == {'S2': 1}


def test_broken_subscriber_is_skipped_and_removed(sender):
    rooms = RoomRegistry(sender)
    rooms.subscribe('S1', 'a')
    rooms.subscribe('S1', 'dead')
    rooms.subscribe('S1', 'b')
    sender.broken.add('dead')

    assert rooms.broadcast('S1', 'state_updated', {'n': 1}) == 2
    assert 'dead' not in rooms.members('S1')
    assert rooms.broadcast('S1', 'state_updated', {'n': 2}) == 2
    assert [d['n'] for _, d in sender.for_handle('a')] == [1, 2]
