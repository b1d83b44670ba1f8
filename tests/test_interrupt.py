import signal

import pytest

from splitcone.interrupt import InterruptListener


def test_not_interrupted_before_any_signal():
    listener = InterruptListener()
    with listener:
        assert listener.is_interrupted() is False


def test_signal_is_recorded_instead_of_raising():
    with InterruptListener() as listener:
        signal.raise_signal(signal.SIGINT)
        assert listener.is_interrupted() is True


def test_previous_handler_is_restored_on_exit():
    calls = []

    def custom_handler(signum, frame):
        calls.append(signum)

    original = signal.signal(signal.SIGINT, custom_handler)
    try:
        with InterruptListener() as listener:
            signal.raise_signal(signal.SIGINT)
            assert listener.is_interrupted() is True
            assert calls == []
        signal.raise_signal(signal.SIGINT)
        assert calls == [signal.SIGINT]
        assert signal.getsignal(signal.SIGINT) is custom_handler
    finally:
        signal.signal(signal.SIGINT, original)


def test_restart_clears_flag():
    listener = InterruptListener()
    listener.start()
    signal.raise_signal(signal.SIGINT)
    assert listener.is_interrupted()
    listener.stop()
    listener.start()
    try:
        assert listener.is_interrupted() is False
    finally:
        listener.stop()


def test_stop_without_start_leaves_handler_alone():
    original = signal.getsignal(signal.SIGINT)
    listener = InterruptListener()
    listener.stop()
    assert listener.is_interrupted() is False
    assert signal.getsignal(signal.SIGINT) == original


def test_after_stop_signal_raises_keyboard_interrupt():
    listener = InterruptListener()
    listener.start()
    listener.stop()
    with pytest.raises(KeyboardInterrupt):
        signal.raise_signal(signal.SIGINT)
    assert listener.is_interrupted() is False