from jitkit.clock import Clock


def _fake_timer(values):
    it = iter(values)
    return lambda: next(it)


def test_initial_state():
    c = Clock()
    assert c.count == 0
    assert c.clock == 0


def test_single_section():
    ticks = [100, 250]
    c = Clock(timer=_fake_timer(ticks))
    c.begin()
    c.end()
    assert c.count == 1
    assert c.clock == ticks[1] - ticks[0]


def test_accumulates_sections():
    ticks = [10, 40, 100, 107]
    c = Clock(timer=_fake_timer(ticks))
    for _ in range(2):
        c.begin()
        c.end()
    assert c.count == 2
    assert c.clock == (ticks[1] - ticks[0]) + (ticks[3] - ticks[2])


def test_context_manager():
    ticks = [5, 9]
    c = Clock(timer=_fake_timer(ticks))
    with c:
        pass
    assert c.count == 1
    assert c.clock == ticks[1] - ticks[0]


def test_clear():
    c = Clock(timer=_fake_timer([1, 3]))
    c.begin()
    c.end()
    c.clear()
    assert c.count == 0
    assert c.clock == 0


def test_real_timer_monotonic():
    c = Clock()
    c.begin()
    c.end()
    assert c.clock >= 0
    assert c.count == 1