import logging
import os
import re

import pytest

from kiosk_bootstrap.logger import ChannelLogger
from kiosk_bootstrap.processors import (
    IntrospectionProcessor,
    MemoryPeakUsageProcessor,
    MemoryUsageProcessor,
    MessageInterpolationProcessor,
    ProcessIdProcessor,
    RequestContextProcessor,
    UidProcessor,
    format_bytes,
    request_context,
)


class Checkout:
    def pay(self, logger):
        logger.info("paying")

    @classmethod
    def refund(cls, logger):
        logger.info("refunding")


def log_from_function(logger):
    logger.info("plain function")


class TestMessageInterpolation:
    def test_placeholders_from_context(self, make_record):
        record = make_record("user %user% signed in", context={"user": "ada"})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "user ada signed in"

    def test_placeholders_from_mapping_args_drop_args(self, make_record):
        record = make_record("order %order_id% for %amount%", args=({"order_id": 7, "amount": 2.5},))
        MessageInterpolationProcessor()(record)
        assert record.args == ()
        assert record.getMessage() == "order 7 for 2.5"

    def test_args_win_over_context_and_extra(self, make_record):
        record = make_record("%who%", args=({"who": "args"},), context={"who": "context"})
        record.extra["who"] = "extra"
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "args"

    def test_unknown_placeholder_is_left_alone(self, make_record):
        record = make_record("value %missing% here", context={"other": 1})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "value %missing% here"

    def test_printf_arguments_still_work(self, make_record):
        record = make_record("%s items in %d%% of carts", args=(3, 40), context={"x": 1})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "3 items in 40% of carts"

    def test_percent_in_value_survives_printf_args(self, make_record):
        record = make_record("discount %rate% for %s", args=("ada",), context={"rate": "50%"})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "discount 50% for ada"

    def test_percent_in_value_with_remaining_mapping_conversions(self, make_record):
        record = make_record("%(user)s got %rate%", args=({"user": "ada"},), context={"rate": "5%d"})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "ada got 5%d"

    def test_percent_in_value_without_args(self, make_record):
        record = make_record("rate %rate%", context={"rate": "50%s"})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == "rate 50%s"

    def test_values_are_stringified(self, make_record):
        record = make_record("%flag% %data% %nothing%", context={"flag": True, "data": {"b": 1, "a": 2}, "nothing": None})
        MessageInterpolationProcessor()(record)
        assert record.getMessage() == 'true {"a": 2, "b": 1} null'


class TestUid:
    def test_length_and_stability(self, make_record):
        proc = UidProcessor(24)
        first, second = make_record(), make_record()
        proc(first)
        proc(second)
        assert re.fullmatch(r"[0-9a-f]{24}", first.extra["uid"])
        assert first.extra["uid"] == second.extra["uid"]

    def test_reset_generates_new_token(self):
        proc = UidProcessor(32)
        before = proc.uid
        proc.reset()
        assert proc.uid != before
        assert len(proc.uid) == 32

    @pytest.mark.parametrize("length", [0, 33, -1])
    def test_invalid_length(self, length):
        with pytest.raises(ValueError):
            UidProcessor(length)

    def test_odd_length(self):
        assert len(UidProcessor(7).uid) == 7


def test_process_id(make_record):
    record = make_record()
    ProcessIdProcessor()(record)
    assert record.extra["process_id"] == os.getpid()


def test_memory_processors(make_record):
    record = make_record()
    MemoryUsageProcessor()(record)
    MemoryPeakUsageProcessor()(record)
    assert re.fullmatch(r"[\d.]+ (MB|KB|B)", record.extra["memory_usage"])
    assert re.fullmatch(r"[\d.]+ (MB|KB|B)", record.extra["memory_peak_usage"])

    raw = make_record()
    MemoryPeakUsageProcessor(use_formatting=False)(raw)
    assert isinstance(raw.extra["memory_peak_usage"], int)
    assert raw.extra["memory_peak_usage"] > 0


def test_format_bytes():
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 KB"
    assert format_bytes(3 * 1024 * 1024) == "3.0 MB"


def test_request_context(make_record):
    proc = RequestContextProcessor()

    outside = make_record()
    proc(outside)
    assert outside.extra == {}

    with request_context(method="POST", uri="/orders", ip="10.0.0.5"):
        inside = make_record()
        proc(inside)
    assert inside.extra == {"http_method": "POST", "url": "/orders", "ip": "10.0.0.5"}

    after = make_record()
    proc(after)
    assert after.extra == {}


class TestIntrospection:
    def _logger(self, capture):
        capture.push_processor(IntrospectionProcessor())
        logger = ChannelLogger("intro")
        logger.addHandler(capture)
        return logger

    def test_method_call_site(self, capture):
        logger = self._logger(capture)
        Checkout().pay(logger)
        extra = capture.records[0].extra
        assert extra["class"] == "Checkout"
        assert extra["function"] == "pay"
        assert os.path.basename(extra["file"]) == "test_processors.py"
        assert isinstance(extra["line"], int)

    def test_classmethod_call_site(self, capture):
        logger = self._logger(capture)
        Checkout.refund(logger)
        assert capture.records[0].extra["class"] == "Checkout"
        assert capture.records[0].extra["function"] == "refund"

    def test_function_call_site_has_no_class(self, capture):
        logger = self._logger(capture)
        log_from_function(logger)
        assert capture.records[0].extra["class"] is None
        assert capture.records[0].extra["function"] == "log_from_function"

    def test_notice_reports_the_caller(self, capture):
        logger = self._logger(capture)
        logger.notice("from the test")
        assert capture.records[0].funcName == "test_notice_reports_the_caller"
        assert capture.records[0].extra["function"] == "test_notice_reports_the_caller"

    def test_unknown_call_site_adds_nothing(self, make_record):
        record = make_record()
        record.pathname = "(unknown file)"
        IntrospectionProcessor()(record)
        assert record.extra == {}


class TestHandlerProcessing:
    def test_processors_run_in_attachment_order(self, capture):
        seen = []
        capture.push_processor(lambda r: seen.append("first") or r)
        capture.push_processor(lambda r: seen.append("second") or r)
        logger = ChannelLogger("order")
        logger.addHandler(capture)

        logger.info("x")

        assert seen == ["first", "second"]

    def test_last_writer_wins(self, capture):
        def writer(value):
            def proc(record):
                record.extra["source"] = value
                return record

            return proc

        capture.push_processor(writer("a")).push_processor(writer("b"))
        logger = ChannelLogger("order")
        logger.addHandler(capture)

        logger.info("x")

        assert capture.records[0].extra["source"] == "b"

    def test_failing_processor_degrades_the_record(self, capture, caplog):
        def broken(record):
            raise RuntimeError("no frame")

        capture.push_processor(broken).push_processor(ProcessIdProcessor())
        logger = ChannelLogger("degraded")
        logger.addHandler(capture)

        with caplog.at_level(logging.WARNING, logger="kiosk_bootstrap"):
            logger.info("still delivered")

        record = capture.records[0]
        assert record.getMessage() == "still delivered"
        assert record.extra["processor_errors"] == ["function: no frame"]
        assert record.extra["process_id"] == os.getpid()
        assert "no frame" in caplog.text

    def test_enrichment_does_not_leak_between_handlers(self, capture_factory):
        enriched = capture_factory(processors=[UidProcessor(8)])
        plain = capture_factory()
        logger = ChannelLogger("isolated")
        logger.addHandler(enriched)
        logger.addHandler(plain)

        logger.info("x")

        assert "uid" in enriched.records[0].extra
        assert plain.records[0].extra == {}
