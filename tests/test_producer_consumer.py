import threading

import pytest

from clusterlod.producer_consumer import ProducerConsumer


def test_empty_items_rejected():
    with pytest.raises(ValueError):
        ProducerConsumer([])


def test_try_consume_on_empty_fails():
    pc = ProducerConsumer([0, 0])
    seen = []
    assert pc.try_consume(seen.append) is False
    assert seen == []
    assert pc.empty()


def test_produce_then_consume_in_order():
    pc = ProducerConsumer([0, 0, 0])
    assert pc.try_produce(lambda _: 7)
    assert pc.try_produce(lambda _: 8)
    assert len(pc) == 2
    seen = []
    assert pc.try_consume(seen.append)
    assert pc.try_consume(seen.append)
    assert seen == [7, 8]
    assert pc.empty()


def test_full_queue_rejects_try_produce():
    pc = ProducerConsumer([None])
    assert pc.try_produce(lambda _: "a")
    assert pc.full()
    assert pc.try_produce(lambda _: "b") is False
    assert pc.canceled() is False
    assert pc.storage() == ("a",)


def test_mutating_callback_keeps_item():
    pc = ProducerConsumer([[], []])
    assert pc.try_produce(lambda item: item.append(1))
    seen = []
    pc.try_consume(lambda item: seen.append(list(item)))
    assert seen == [[1]]


def test_maybe_consume_keeps_rejected_item():
    pc = ProducerConsumer([0, 0])
    pc.try_produce(lambda _: 5)
    assert pc.maybe_try_consume(lambda item: False) is False
    assert len(pc) == 1
    assert pc.maybe_try_consume(lambda item: item == 5) is True
    assert len(pc) == 0


def test_promised_size_counts_in_flight_produce():
    pc = ProducerConsumer([0])
    observed = []

    def fill(_):
        observed.append((len(pc), pc.promised_size()))
        return 1

    pc.try_produce(fill)
    assert observed == [(0, 1)]
    assert pc.promised_size() == 1
    pc.try_consume(lambda _: None)
    assert pc.promised_empty()


def test_cancel_blocks_produce_and_consume():
    pc = ProducerConsumer([0, 0])
    pc.cancel()
    assert pc.canceled()
    assert pc.try_produce(lambda _: 1) is False
    assert pc.wait_produce(lambda _: 1) is False
    assert pc.wait_consume(lambda _: None) is False


def test_cancel_unblocks_waiting_consumer():
    pc = ProducerConsumer([0])
    results = []
    worker = threading.Thread(target=lambda: results.append(pc.wait_consume(lambda _: None)))
    worker.start()
    pc.cancel()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert results == [False]


@pytest.mark.parametrize("capacity", [1, 2, 3])
def test_threaded_order_is_preserved(capacity):
    pc = ProducerConsumer([0] * capacity)
    received = []

    def consumer():
        running = True
        while running:
            def take(value):
                nonlocal running
                received.append(value)
                running = value != 0

            pc.wait_consume(take)

    worker = threading.Thread(target=consumer)
    worker.start()
    for value in range(200, -1, -1):
        assert pc.wait_produce(lambda _, v=value: v)
    worker.join(timeout=10)
    assert not worker.is_alive()
    assert received == list(range(200, -1, -1))


def test_drain_waits_for_consumer():
    pc = ProducerConsumer([0, 0])
    pc.try_produce(lambda _: 1)
    pc.try_produce(lambda _: 2)
    seen = []

    def consumer():
        while len(seen) < 2:
            pc.wait_consume(seen.append)

    worker = threading.Thread(target=consumer)
    worker.start()
    pc.drain()
    worker.join(timeout=5)
    assert pc.empty()
    assert seen == [1, 2]