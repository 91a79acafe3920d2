import threading
from datetime import timedelta

from academy_attendance.attendance.service import AttendanceService
from academy_attendance.common.locks import KeyedLocks


def test_entry_is_dropped_after_release():
    locks = KeyedLocks()
    with locks.hold(("record", 1, "2026-03-02")):
        assert len(locks) == 1
    assert len(locks) == 0


def test_reentrant_hold_keeps_entry_until_outermost_release():
    locks = KeyedLocks()
    with locks.hold("k"):
        with locks.hold("k"):
            assert len(locks) == 1
        assert len(locks) == 1
    assert len(locks) == 0


def test_entry_is_dropped_when_body_raises():
    locks = KeyedLocks()
    try:
        with locks.hold("k"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert len(locks) == 0


def test_waiters_share_one_lock_and_serialize():
    locks = KeyedLocks()
    barrier = threading.Barrier(6)
    inside, overlaps = [], []

    def worker():
        barrier.wait()
        with locks.hold("person-1"):
            if inside:
                overlaps.append(True)
            inside.append(True)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert len(locks) == 0


def test_daily_punches_do_not_accumulate_locks(attendance_repo, persons, fixed_now):
    locks = KeyedLocks()
    service = AttendanceService(attendance_repo, persons, locks=locks)

    for day in range(30):
        service.punch_in(1, now=fixed_now + timedelta(days=day))

    assert len(attendance_repo.all()) == 30
    assert len(locks) == 0
