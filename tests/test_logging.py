import logging
import pytest
import requests
from unittest.mock import MagicMock

from distbundle.config import effective_settings as config
from distbundle.log import LokiHandler, resolve_level, setup_logging
from distbundle.log import handler as handler_module


@pytest.fixture
def post(monkeypatch) -> MagicMock:
    mock = MagicMock(return_value=MagicMock(status_code=204))
    monkeypatch.setattr(handler_module.requests, "post", mock)
    return mock


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)


def make_record(msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("supervisor", level, __file__, 1, msg, None, None)


def test_loki_handler_pushes_on_close(post):
    handler = LokiHandler("http://loki:3100/", org_id="tenant", labels={"service": "svc"}, flush_interval=60)
    handler.setFormatter(logging.Formatter("%(message)s"))

    handler.emit(make_record("Started"))
    post.assert_not_called()
    handler.close()

    post.assert_called_once()
    args, kwargs = post.call_args
    assert args[0] == "http://loki:3100/loki/api/v1/push"
    assert kwargs["headers"]["X-Scope-OrgID"] == "tenant"
    (stream,) = kwargs["json"]["streams"]
    assert stream["stream"]["service"] == "svc"
    assert stream["stream"]["level"] == "info"
    assert stream["stream"]["logger"] == "supervisor"
    assert stream["values"][0][1] == "Started"


def test_loki_handler_flushes_when_batch_is_full(post):
    handler = LokiHandler("http://loki:3100", flush_interval=60, batch_size=2)
    try:
        handler.emit(make_record("one"))
        post.assert_not_called()
        handler.emit(make_record("two"))

        assert len(post.call_args.kwargs["json"]["streams"]) == 2
        assert "X-Scope-OrgID" not in post.call_args.kwargs["headers"]
    finally:
        handler.close()
    # Nothing left to send on close.
    assert post.call_count == 1


def test_loki_failures_do_not_raise(post, capsys):
    post.side_effect = requests.ConnectionError("refused")
    handler = LokiHandler("http://loki:3100", flush_interval=60)

    handler.emit(make_record("lost"))
    handler.close()

    assert "Failed to send 1 logs to Loki" in capsys.readouterr().err


def test_setup_logging_writes_to_stderr_only(restore_root_logger, capsys):
    setup_logging(logging.INFO)

    logging.getLogger("supervisor").info("to stderr")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "INFO     - [supervisor] - to stderr" in captured.err


def test_setup_logging_adds_loki_handler_when_enabled(restore_root_logger, post, monkeypatch):
    monkeypatch.setattr(config, "LOKI_ENABLED", True)
    monkeypatch.setattr(config, "LOKI_URL", "http://loki:3100")

    setup_logging(logging.WARNING, service_name="svc")

    loki = [h for h in restore_root_logger.handlers if isinstance(h, LokiHandler)]
    assert len(loki) == 1
    assert loki[0].labels == {"service": "svc"}


def test_setup_logging_replaces_previous_handlers(restore_root_logger):
    setup_logging()
    setup_logging()

    assert len(restore_root_logger.handlers) == 1


@pytest.mark.parametrize("value, expected", [
    ("", logging.WARNING),
    ("DEBUG", logging.DEBUG),
    ("NOPE", logging.WARNING),
])
def test_resolve_level(monkeypatch, value, expected):
    monkeypatch.setattr(config, "LOG_LEVEL", value)

    assert resolve_level(logging.WARNING) == expected
