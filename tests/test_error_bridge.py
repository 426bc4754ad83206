import sys
import threading

import pytest

from kiosk_bootstrap.error_bridge import ErrorBridge, install_uncaught_handler
from kiosk_bootstrap.logger import ChannelLogger


@pytest.fixture
def logger(capture):
    logger = ChannelLogger("app")
    logger.addHandler(capture)
    return logger


@pytest.fixture
def bridge(logger):
    bridge = ErrorBridge(logger, call_previous=False).install()
    yield bridge
    bridge.uninstall()


def _exc_info(exc):
    try:
        raise exc
    except BaseException:
        return sys.exc_info()


def test_install_and_uninstall_chain_hooks(logger):
    previous, previous_threading = sys.excepthook, threading.excepthook

    bridge = install_uncaught_handler(logger)
    assert sys.excepthook == bridge.handle_exception
    assert threading.excepthook == bridge.handle_thread_exception
    assert bridge.install() is bridge

    bridge.uninstall()
    assert sys.excepthook is previous
    assert threading.excepthook is previous_threading


def test_uncaught_exception_is_logged_as_error(bridge, capture):
    bridge.handle_exception(*_exc_info(RuntimeError("kaput")))

    record = capture.records[0]
    assert record.levelname == "ERROR"
    assert record.getMessage() == "Uncaught exception RuntimeError: kaput"
    assert record.exc_info[0] is RuntimeError


def test_previous_hook_is_called(logger, capture):
    seen = []
    bridge = ErrorBridge(logger)
    bridge.install()
    bridge._previous_excepthook = lambda *a: seen.append(a[0])
    try:
        bridge.handle_exception(*_exc_info(ValueError("x")))
    finally:
        bridge.uninstall()

    assert seen == [ValueError]
    assert len(capture.records) == 1


def test_keyboard_interrupt_is_not_logged(bridge, capture):
    seen = []
    bridge._previous_excepthook = lambda *a: seen.append(a[0])

    bridge.handle_exception(*_exc_info(KeyboardInterrupt()))

    assert capture.records == []
    assert seen == [KeyboardInterrupt]


def _run_in_thread(logger, target, name=None):
    bridge = ErrorBridge(logger, call_previous=False).install()
    try:
        worker = threading.Thread(target=target, name=name)
        worker.start()
        worker.join()
    finally:
        bridge.uninstall()


def test_thread_exception_is_logged(logger, capture):
    def boom():
        raise LookupError("missing")

    _run_in_thread(logger, boom, name="worker-1")

    assert len(capture.records) == 1
    assert capture.records[0].getMessage() == "Uncaught exception in thread worker-1 LookupError: missing"


def test_thread_system_exit_is_ignored(logger, capture):
    _run_in_thread(logger, sys.exit)

    assert capture.records == []
