from dinebot.services.event_bus import EventBus


def test_failing_handler_does_not_block_the_others():
    bus = EventBus()
    received = []

    def broken(payload):
        raise RuntimeError("kitchen printer offline")

    bus.subscribe("order.created", broken)
    bus.subscribe("order.created", received.append)

    delivered = bus.emit("order.created", {"order_id": 7})

    assert delivered == 1
    assert received == [{"order_id": 7}]


def test_subscribe_is_idempotent_and_unsubscribe_stops_delivery():
    bus = EventBus()
    received = []

    assert bus.subscribe("order.created", received.append) == received.append
    bus.subscribe("order.created", received.append)
    assert bus.emit("order.created", {"order_id": 1}) == 1

    bus.unsubscribe("order.created", received.append)
    assert bus.emit("order.created", {"order_id": 2}) == 0
    assert received == [{"order_id": 1}]
