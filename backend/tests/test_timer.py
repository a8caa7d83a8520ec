from threading import RLock

from wrongfruit.game.timer import RoundTimer


def _inline_spawn(target, *args):
    target(*args)


def test_stop_twice_is_a_noop():
    fired = []
    timer = RoundTimer(RLock(), spawn=lambda *a: None)
    timer.start(5, lambda: fired.append(True))

    timer.stop()
    timer.stop()

    assert not timer.running
    timer.tick()
    assert fired == []


def test_tick_counts_down_and_fires_once():
    fired = []
    ticks = []
    timer = RoundTimer(RLock(), spawn=lambda *a: None, on_tick=ticks.append)
    timer.start(3, lambda: fired.append(True))

    for _ in range(5):
        timer.tick()

    assert ticks == [2, 1, 0]
    assert fired == [True]
    assert not timer.running


def test_restart_replaces_previous_countdown():
    fired = []
    timer = RoundTimer(RLock(), spawn=lambda *a: None)
    timer.start(1, lambda: fired.append("first"))
    timer.start(2, lambda: fired.append("second"))

    assert timer.remaining == 2
    timer.tick()
    timer.tick()

    assert fired == ["second"]


def test_runner_sleeps_between_ticks_and_exits_after_elapsing():
    fired = []
    sleeps = []
    timer = RoundTimer(RLock(), spawn=_inline_spawn, sleep=sleeps.append)

    timer.start(3, lambda: fired.append(True))

    assert fired == [True]
    # three ticks, then one wake-up that sees the stale generation
    assert sleeps == [1.0, 1.0, 1.0, 1.0]


def test_stale_runner_does_not_touch_a_restarted_timer():
    runners = []
    fired = []
    timer = RoundTimer(RLock(), spawn=lambda target, *args: runners.append((target, args)), sleep=lambda s: None)

    timer.start(1, lambda: fired.append("old"))
    timer.stop()
    timer.start(10, lambda: fired.append("new"))

    old_target, old_args = runners[0]
    old_target(*old_args)

    assert fired == []
    assert timer.remaining == 10
    assert timer.running


def test_callback_errors_are_contained():
    def boom():
        raise RuntimeError("boom")

    timer = RoundTimer(RLock(), spawn=_inline_spawn, sleep=lambda s: None)
    timer.start(1, boom)

    assert not timer.running


def test_callback_errors_are_reported_to_the_error_hook():
    errors = []

    def boom():
        raise RuntimeError("boom")

    timer = RoundTimer(
        RLock(), spawn=_inline_spawn, sleep=lambda s: None, on_error=lambda: errors.append(True)
    )
    timer.start(1, boom)

    assert errors == [True]
    assert not timer.running
