import threading

from chronicle.session import PAUSE_SECONDS, PauseController, SessionStats


class _Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_session_stats_accumulate():
    stats = SessionStats()
    stats.record_commit(2)
    stats.record_commit(0)
    stats.record_commit(3)
    assert stats.snapshot() == {"commits": 3, "files_committed": 5}


def test_session_stats_thread_safe():
    stats = SessionStats()

    def work():
        for _ in range(500):
            stats.record_commit(1)

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert stats.snapshot() == {"commits": 2000, "files_committed": 2000}


def test_pause_lasts_one_hour():
    clock = _Clock()
    pause = PauseController(clock)
    assert not pause.is_active()

    assert pause.pause() == clock.now + PAUSE_SECONDS
    assert pause.is_active()

    clock.now += PAUSE_SECONDS - 0.001
    assert pause.is_active()

    clock.now += 0.002
    assert not pause.is_active()
    assert pause.paused_until is None


def test_resume_clears_immediately():
    clock = _Clock()
    pause = PauseController(clock)
    pause.pause()
    pause.resume()
    assert not pause.is_active()
    assert pause.remaining() == 0.0


def test_remaining_counts_down():
    clock = _Clock()
    pause = PauseController(clock)
    pause.pause()
    clock.now += 600
    assert pause.remaining() == PAUSE_SECONDS - 600
