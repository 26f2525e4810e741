import threading
from datetime import datetime

from src.aakb_workforce.aakb_workforce.attendance.approvals import ApprovalChannel


def test_wait_returns_published_approval_immediately():
    channel = ApprovalChannel()
    channel.publish(7, datetime(2026, 3, 2, 12, 0))

    assert channel.wait(7, timeout=0) == datetime(2026, 3, 2, 12, 0)


def test_wait_times_out_without_approval():
    assert ApprovalChannel().wait(7, timeout=0.01) is None


def test_waiter_is_woken_by_publish():
    channel = ApprovalChannel()
    results = []
    waiter = threading.Thread(target=lambda: results.append(channel.wait(7, timeout=5)))
    waiter.start()

    channel.publish(7, datetime(2026, 3, 2, 12, 0))
    waiter.join(timeout=5)

    assert results == [datetime(2026, 3, 2, 12, 0)]


def test_first_publish_wins_and_forget_clears():
    channel = ApprovalChannel()
    channel.publish(7, datetime(2026, 3, 2, 12, 0))
    channel.publish(7, datetime(2026, 3, 2, 13, 0))
    assert channel.wait(7, timeout=0) == datetime(2026, 3, 2, 12, 0)

    channel.forget(7)
    assert channel.wait(7, timeout=0) is None


def test_other_ids_do_not_wake_waiter():
    channel = ApprovalChannel()
    channel.publish(8, datetime(2026, 3, 2, 12, 0))
    assert channel.wait(7, timeout=0.01) is None


def test_publish_drops_approvals_older_than_a_day():
    channel = ApprovalChannel()
    channel.publish(7, datetime(2026, 3, 1, 12, 0))
    channel.publish(8, datetime(2026, 3, 2, 11, 0))

    channel.publish(9, datetime(2026, 3, 2, 12, 30))

    assert len(channel) == 2
    assert channel.wait(7, timeout=0) is None
    assert channel.wait(8, timeout=0) == datetime(2026, 3, 2, 11, 0)
