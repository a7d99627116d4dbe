"""Tests for the connection status reporter."""

import threading

from session.status import ConnectionStatus, ConnectionStatusBoard


def test_no_session_is_disconnected():
    snapshot = ConnectionStatusBoard().snapshot()
    assert snapshot == ConnectionStatus(status_code=0, key_confirmed=False, active_peer_id="")
    assert snapshot.as_list() == [0, False, ""]


def test_publish_and_clear():
    board = ConnectionStatusBoard()
    board.publish(1, True, "123456789")
    assert board.snapshot().as_list() == [1, True, "123456789"]
    board.clear()
    assert board.snapshot().as_list() == [0, False, ""]


def test_snapshot_is_a_copy():
    board = ConnectionStatusBoard()
    snapshot = board.snapshot()
    snapshot.status_code = 99
    assert board.snapshot().status_code == 0


def test_readers_see_whole_snapshots():
    board = ConnectionStatusBoard()
    seen = []

    def writer():
        for i in range(200):
            board.publish(i, i % 2 == 0, f"peer-{i}")

    def reader():
        for _ in range(200):
            seen.append(board.snapshot())

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    for s in seen:
        if s.status_code:
            assert s.active_peer_id == f"peer-{s.status_code}"
            assert s.key_confirmed == (s.status_code % 2 == 0)
