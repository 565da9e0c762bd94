from edfscope.analysis.pacing import SpeedMonitor


def test_speed_monitor_reports_real_time_ratio() -> None:
    monitor = SpeedMonitor(window_size=100)
    for i in range(100):
        monitor.add_checkpoint(i * 0.1, i * 0.1)
    assert 0.99 < monitor.real_speed_ratio < 1.01


def test_speed_monitor_reports_double_speed() -> None:
    monitor = SpeedMonitor(window_size=10)
    for i in range(30):
        monitor.add_checkpoint(i * 0.1, i * 0.2)
    snap = monitor.snapshot(expected_speed_ratio=2.0)
    assert abs(snap.real_speed_ratio - 2.0) < 1e-9
    assert snap.accuracy > 0.999


def test_speed_monitor_window_tracks_speed_change() -> None:
    monitor = SpeedMonitor(window_size=5)
    wall = file = 0.0
    for _ in range(20):
        wall += 0.1
        file += 0.1
        monitor.add_checkpoint(wall, file)
    for _ in range(20):
        wall += 0.1
        file += 0.3
        monitor.add_checkpoint(wall, file)

    assert abs(monitor.real_speed_ratio - 3.0) < 1e-6
    assert 1.0 < monitor.overall_speed_ratio < 3.0


def test_speed_monitor_needs_two_checkpoints() -> None:
    monitor = SpeedMonitor()
    assert monitor.real_speed_ratio == 0.0
    monitor.add_checkpoint(0.0, 0.0)
    assert monitor.real_speed_ratio == 0.0
    monitor.reset()
    assert monitor.overall_speed_ratio == 0.0
