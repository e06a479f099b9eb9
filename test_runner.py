import signal

import pytest

from conftest import FakeSQS, QUEUE_URL, client_error
from sqs_queue import runner
from sqs_queue.hooks import JobHandler, LoggingHandler
from sqs_queue.io_sqs import SQSClient


class Recorder(JobHandler):
    seen = []

    def handle(self, payload, ttr, attempt, priority):
        Recorder.seen.append(payload)
        return True


@pytest.fixture
def fake(monkeypatch):
    fake = FakeSQS()
    monkeypatch.setenv("QUEUE_URL", QUEUE_URL)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.setenv("QUEUE_WAIT_TIME", "0")
    monkeypatch.delenv("SQS_QUEUE_CONFIG", raising=False)
    monkeypatch.setattr(runner, "SQSClient", lambda url, **kw: SQSClient(url, sqs_client=fake, logger=kw["logger"]))
    # keep the test process's own signal handlers intact
    monkeypatch.setattr(runner, "install_signal_handlers", lambda queue, logger: None)
    Recorder.seen = []
    return fake


def test_push_then_run(fake, capsys):
    assert runner.main(["push", "hello;world", "--ttr", "45", "--delay", "0"]) == 0
    message_id = capsys.readouterr().out.strip().splitlines()[-1]
    assert fake.messages[0]["id"] == message_id
    assert fake.messages[0]["body"] == "45;hello;world"

    assert runner.main(["--handler", "test_runner.Recorder", "run"]) == 0

    assert Recorder.seen == ["hello;world"]
    assert fake.messages == []


def test_push_uses_configured_ttr(fake, monkeypatch):
    monkeypatch.setenv("QUEUE_TTR", "77")
    runner.main(["push", "job"])
    assert fake.messages[0]["body"] == "77;job"


def test_push_rejects_bad_delay(fake):
    assert runner.main(["push", "job", "--delay", "5000"]) == 1
    assert fake.messages == []


def test_clear(fake):
    fake.enqueue("1;a")
    assert runner.main(["clear"]) == 0
    assert fake.calls_to("purge_queue")


def test_stats(fake):
    assert runner.main(["stats"]) == 0
    assert fake.calls_to("get_queue_attributes")


def test_adapter_failure_exits_nonzero(fake):
    def broken(**kwargs):
        raise client_error("AccessDenied", "ReceiveMessage")

    fake.receive_message = broken
    assert runner.main(["run"]) == 1


def test_load_handler_sets_logger():
    logger = object()
    handler = runner.load_handler("sqs_queue.hooks.LoggingHandler", logger)
    assert isinstance(handler, LoggingHandler)
    assert handler.logger is logger


def test_load_handler_needs_class_path():
    with pytest.raises(ValueError):
        runner.load_handler("LoggingHandler", None)


def test_signal_handlers_stop_queue(monkeypatch):
    installed = {}
    monkeypatch.setattr(runner.signal, "signal", lambda sig, fn: installed.setdefault(sig, fn))

    class FakeQueue:
        stopped = False

        def stop(self):
            self.stopped = True

    queue = FakeQueue()
    runner.install_signal_handlers(queue, runner.get_logger("test-signals", level="ERROR"))
    installed[signal.SIGTERM](signal.SIGTERM, None)

    assert queue.stopped
    assert signal.SIGINT in installed


def test_example_service_hooks(fake):
    runner.main(["push", '{"task": "resize"}'])
    runner.main(["push", "not json"])

    assert runner.main(["--handler", "service.hooks.ServiceHooks", "run"]) == 0

    assert [m["body"] for m in fake.messages] == ["300;not json"]
