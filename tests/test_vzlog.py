from unittest.mock import patch

import pytest

from vmoutil import vzlog
from vmoutil.vzlog import (
    LOG_CONTEXT_MAP,
    ResourceConfig,
    default_logger,
    delete_log_context,
    ensure_context,
    ensure_resource_logger,
)


class FakeLogger:
    def __init__(self):
        self.actual_msg = None
        self.count = 0
        self.errors = []
        self.debugs = []

    def info(self, msg):
        self.actual_msg = msg
        self.count += 1

    def debug(self, msg):
        self.debugs.append(msg)

    def error(self, msg):
        self.errors.append(msg)


@pytest.fixture(autouse=True)
def clean_contexts():
    LOG_CONTEXT_MAP.clear()
    yield
    LOG_CONTEXT_MAP.clear()


def test_log_periodic():
    fake = FakeLogger()
    log = ensure_context("testns/test").ensure_logger("comp1", fake, None).set_frequency(3)
    with patch("vmoutil.vzlog.time.monotonic", side_effect=[0.0, 1.0, 2.0, 3.0, 4.0]):
        for _ in range(5):
            log.progress("test1")
    assert fake.count == 2
    assert fake.actual_msg == "test1"


def test_log_repeat():
    fake = FakeLogger()
    log = ensure_context("testns/test2").ensure_logger("comp1", fake, None).set_frequency(2)
    for _ in range(5):
        log.progress("test1")
    assert fake.count == 1
    assert fake.actual_msg == "test1"


def test_history():
    fake = FakeLogger()
    log = ensure_context("testns/test2").ensure_logger("comp1", fake, None).set_frequency(2)
    for msg in ["test1", "test1", "test1", "test2", "test2", "test1", "test2", "test1"]:
        log.progress(msg)
    assert fake.count == 2
    assert fake.actual_msg == "test2"


def test_history_once():
    fake = FakeLogger()
    log = ensure_context("testns/test2").ensure_logger("comp1", fake, None)
    for msg in ["test1", "test1", "test2", "test1", "test2", "test1"]:
        log.once(msg)
    assert fake.count == 2
    assert fake.actual_msg == "test2"


def test_log_new_msg():
    fake = FakeLogger()
    log = ensure_context("testns/test2").ensure_logger("comp1", fake, None).set_frequency(2)
    for msg in ["test1", "test1", "test1", "test2", "test2"]:
        log.progress(msg)
    assert fake.count == 2
    assert fake.actual_msg == "test2"


def test_log_format():
    fake = FakeLogger()
    log = ensure_context("testns/test3").ensure_logger("comp1", fake, None)
    log.progressf("test %s", "foo")
    assert fake.count == 1
    assert fake.actual_msg == "test foo"


def test_multiple_contexts():
    c1 = ensure_context("k1")
    c2 = ensure_context("k2")
    assert len(LOG_CONTEXT_MAP) == 2
    assert LOG_CONTEXT_MAP["k1"] is c1
    assert LOG_CONTEXT_MAP["k2"] is c2
    delete_log_context("k1")
    delete_log_context("k2")
    assert len(LOG_CONTEXT_MAP) == 0


def test_ensure_context_returns_same_context():
    first = ensure_context("same")
    second = ensure_context("same")
    assert second is first
    assert LOG_CONTEXT_MAP["same"] is first
    assert len(LOG_CONTEXT_MAP) == 1


def test_ensure_logger_reuses_logger_and_replaces_writer():
    context = ensure_context("reuse")
    first = FakeLogger()
    second = FakeLogger()
    log1 = context.ensure_logger("comp", first, "base1")
    log2 = context.ensure_logger("comp", second, "base2")
    assert log1 is log2
    assert log2.base_logger == "base2"
    assert context.root_logger == "base1"
    log2.info("hello")
    assert second.actual_msg == "hello"
    assert first.count == 0


def test_once_then_progress_same_message_suppressed():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None).set_frequency(0)
    log.once("msg")
    log.progress("msg")
    assert fake.count == 1


def test_progress_zero_frequency_logs_every_time():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None).set_frequency(0)
    log.progress("msg")
    log.progress("msg")
    assert fake.count == 2


def test_once_joins_operands_like_sprint():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    log.once(1, 2)
    assert fake.actual_msg == "1 2"
    log.once("a", "b")
    assert fake.actual_msg == "ab"
    log.once("a", 1)
    assert fake.actual_msg == "a1"


def test_oncef_formats_v_verb():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    log.oncef("Statefulset %s/%s has %v", "ns", "name", 3)
    assert fake.actual_msg == "Statefulset ns/name has 3"


def test_error_new_err_logs_and_returns():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    err = log.error_new_err("boom ", 42)
    assert isinstance(err, RuntimeError)
    assert str(err) == "boom 42"
    assert fake.errors == ["boom 42"]


def test_errorf_new_err_logs_and_returns():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    err = log.errorf_new_err("failed: %v", "reason")
    assert str(err) == "failed: reason"
    assert fake.errors == ["failed: reason"]


def test_debugf_and_errorf_pass_through():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    log.debugf("x=%d", 5)
    log.errorf("y=%s", "z")
    log.error("plain")
    assert fake.debugs == ["x=5"]
    assert fake.errors == ["y=z", "plain"]


def test_infof_is_not_throttled():
    fake = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    log.infof("hi %s", "there")
    log.infof("hi %s", "there")
    assert fake.count == 2


def test_set_base_logger_replaces_writer():
    fake = FakeLogger()
    other = FakeLogger()
    log = ensure_context("k").ensure_logger("c", fake, None)
    log.set_base_logger(other)
    log.info("msg")
    assert other.actual_msg == "msg"
    assert log.base_logger is other
    assert fake.count == 0


def test_default_logger_is_shared():
    first = default_logger()
    second = default_logger()
    assert second is first
    assert first.root_logger is first.base_logger
    assert list(LOG_CONTEXT_MAP) == ["default"]


def test_ensure_resource_logger_fields_and_generation():
    config = ResourceConfig(name="vmi", namespace="ns", id="uid-1",
                            generation=1, controller_name="ctrl")
    log1 = ensure_resource_logger(config)
    assert log1.base_logger.fields == {
        "resource_namespace": "ns",
        "resource_name": "vmi",
        "controller": "ctrl",
    }
    assert log1.root_logger is log1.base_logger
    context1 = LOG_CONTEXT_MAP["uid-1"]
    assert context1.generation == 1

    log_same = ensure_resource_logger(config)
    assert log_same is log1
    assert LOG_CONTEXT_MAP["uid-1"] is context1

    config.generation = 2
    log2 = ensure_resource_logger(config)
    assert log2 is not log1
    assert LOG_CONTEXT_MAP["uid-1"] is not context1
    assert LOG_CONTEXT_MAP["uid-1"].generation == 2


def test_resource_logger_once_survives_same_generation():
    config = ResourceConfig(name="vmi", namespace="ns", id="uid-2", generation=3)
    log = ensure_resource_logger(config)
    fake = FakeLogger()
    log.s_logger = fake
    log.once("only once")
    log = ensure_resource_logger(config)
    log.s_logger = fake
    log.once("only once")
    assert fake.count == 1
    assert vzlog.LOG_CONTEXT_MAP["uid-2"].generation == 3