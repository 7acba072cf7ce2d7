import threading

import pytest

from skill_intelligence.core.errors import ErrorKind, RateLimitError
from skill_intelligence.core.rate_limit import WINDOW_SECONDS, RateLimiter


def test_admits_up_to_max_then_rejects(clock):
    limiter = RateLimiter(3, clock=clock)
    for _ in range(3):
        limiter.admit()
        limiter.record()

    with pytest.raises(RateLimitError) as exc_info:
        limiter.admit()
    assert exc_info.value.kind is ErrorKind.RATE_LIMIT
    assert limiter.snapshot().request_count == 3


def test_retry_after_is_remaining_window_rounded_up(clock):
    limiter = RateLimiter(1, clock=clock)
    limiter.admit()
    limiter.record()
    clock.advance(100.5)

    with pytest.raises(RateLimitError) as exc_info:
        limiter.admit()
    assert exc_info.value.retry_after == 3500


def test_window_resets_lazily_on_admit(clock):
    limiter = RateLimiter(2, clock=clock)
    for _ in range(2):
        limiter.admit()
        limiter.record()

    clock.advance(WINDOW_SECONDS)
    # Nothing changes until the next admit
    assert limiter.snapshot().request_count == 2

    limiter.admit()
    window = limiter.snapshot()
    assert window.request_count == 0
    assert window.window_start == clock.now


def test_count_never_exceeds_max(clock):
    limiter = RateLimiter(5, clock=clock)
    for i in range(40):
        try:
            limiter.admit()
        except RateLimitError:
            pass
        else:
            if i % 3 == 0:
                limiter.release()
            else:
                limiter.record()
        assert limiter.snapshot().request_count <= 5
        clock.advance(200)


def test_reservations_count_against_ceiling(clock):
    limiter = RateLimiter(2, clock=clock)
    limiter.admit()
    limiter.admit()
    with pytest.raises(RateLimitError):
        limiter.admit()


def test_release_returns_unused_slot(clock):
    limiter = RateLimiter(1, clock=clock)
    limiter.admit()
    limiter.release()

    limiter.admit()
    limiter.record()
    assert limiter.snapshot().request_count == 1


def test_record_without_admit_is_an_error(clock):
    limiter = RateLimiter(1, clock=clock)
    with pytest.raises(RuntimeError):
        limiter.record()


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        RateLimiter(0)


def test_update_capacity(clock):
    limiter = RateLimiter(1, clock=clock)
    limiter.admit()
    limiter.record()
    limiter.update_capacity(2)

    limiter.admit()
    limiter.record()
    assert limiter.remaining == 0


def test_remaining_and_reset_at(clock):
    limiter = RateLimiter(10, clock=clock)
    limiter.admit()
    limiter.record()

    assert limiter.remaining == 9
    assert limiter.reset_at.timestamp() == pytest.approx(clock.now + WINDOW_SECONDS)

    clock.advance(WINDOW_SECONDS + 1)
    assert limiter.remaining == 10


def test_concurrent_admission_does_not_over_admit():
    limiter = RateLimiter(10)
    admitted = []
    barrier = threading.Barrier(50)

    def worker():
        barrier.wait()
        try:
            limiter.admit()
        except RateLimitError:
            return
        admitted.append(1)
        limiter.record()

    threads = [threading.Thread(target=worker) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(admitted) == 10
    assert limiter.snapshot().request_count == 10
