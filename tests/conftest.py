import logging

import pytest

from kiosk_bootstrap.config import ConfigSource
from kiosk_bootstrap.constants import SERVICE_CONFIG, SERVICE_DISPLAY
from kiosk_bootstrap.container import Container
from kiosk_bootstrap.display import Display
from kiosk_bootstrap.handlers import ProcessingHandlerMixin
from kiosk_bootstrap.logger import ChannelLogger
from kiosk_bootstrap.pipeline import LoggingPipelineBuilder
from kiosk_bootstrap.registry import LoggerRegistry


class CaptureHandler(ProcessingHandlerMixin, logging.Handler):
    """Keeps processed records instead of writing them anywhere."""

    def __init__(self, level=logging.NOTSET, processors=None):
        super().__init__(level, processors=processors)
        self.records = []
        self.closed = False

    def emit(self, record):
        self.records.append(record)

    def close(self):
        self.closed = True
        super().close()


@pytest.fixture
def capture():
    return CaptureHandler()


@pytest.fixture
def capture_factory():
    return CaptureHandler


@pytest.fixture
def make_record():
    def _make(msg="hello", args=(), level=logging.INFO, context=None, name="test"):
        logger = ChannelLogger(name)
        return logger.makeRecord(name, level, __file__, 10, msg, args, None, func="fn", extra=context)

    return _make


@pytest.fixture
def pipeline_config(tmp_path):
    return {
        "logs.primary_channel": "app",
        "debug.cli": True,
        "debug.system": False,
        "directories.root": str(tmp_path) + "/",
        "directories.log": "logs/",
        "logs.default_log": "app.log",
    }


@pytest.fixture
def build_pipeline():
    """Build a logger from a config mapping; every handler is closed afterwards."""
    built = []

    def _build(config, environ=None, install_error_bridge=False, display=None):
        container = Container()
        container.register(SERVICE_CONFIG, lambda c: ConfigSource.from_mapping(config))
        container.register(SERVICE_DISPLAY, lambda c: display or Display())
        registry = LoggerRegistry()
        builder = LoggingPipelineBuilder(
            container,
            registry=registry,
            environ=environ if environ is not None else {},
            install_error_bridge=install_error_bridge,
        )
        built.append(builder)
        return builder, builder.build()

    yield _build

    for builder in built:
        if builder.error_bridge is not None:
            builder.error_bridge.uninstall()
        for logger in builder.registry._loggers.values():
            for handler in list(logger.handlers):
                handler.close()
