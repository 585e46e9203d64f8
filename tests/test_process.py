import sys

from cairn.process import SupervisedProcess

SLEEPER = [sys.executable, "-c", "import time; time.sleep(60)"]


def test_start_and_stop(tmp_path):
    proc = SupervisedProcess("sleeper", lambda: SLEEPER, cwd=tmp_path)

    assert proc.start()
    assert proc.is_alive()

    proc.stop()
    assert not proc.is_alive()


def test_restart_rebuilds_the_command(tmp_path):
    built = []

    def build():
        built.append(len(built))
        return SLEEPER

    proc = SupervisedProcess("sleeper", build, cwd=tmp_path)
    try:
        proc.start()
        assert proc.restart()
        assert proc.is_alive()
    finally:
        proc.stop()

    assert built == [0, 1]


def test_no_command_means_no_launch():
    proc = SupervisedProcess("nothing", lambda: None)

    assert not proc.start()
    assert not proc.is_alive()
    proc.stop()


def test_missing_executable_is_reported_not_raised(tmp_path):
    proc = SupervisedProcess("ghost", lambda: [str(tmp_path / "no-such-binary")])

    assert not proc.start()
    assert not proc.is_alive()
