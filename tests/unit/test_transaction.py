"""
Unit Tests - Transaction State

Lifecycle, finalize barrier and request capture.
"""

import time

import pytest

from apmcore.config import ConnectReply, MetricRule
from apmcore.core.exceptions import AlreadyFinalizedError, NilInputError
from apmcore.core.types import ApdexZone, RequestInfo
from apmcore.transaction.errors import PANIC_ERROR_KLASS


class TestLifecycle:
    """Tests for creation and the end() barrier."""

    def test_web_classification_follows_request(self, make_txn):
        assert make_txn().is_web is True
        assert make_txn(web=False).is_web is False

    def test_end_merges_once(self, make_txn, consumer):
        txn = make_txn()

        assert txn.end() is None
        second = txn.end()

        assert isinstance(second, AlreadyFinalizedError)
        assert consumer.calls == 1
        assert consumer.run_ids == ["run-1"]

    def test_end_computes_duration(self, make_txn):
        txn = make_txn()
        time.sleep(0.01)
        txn.end()

        assert txn.finished is True
        assert txn.duration >= 0.01

    def test_final_name_uses_prefix(self, make_txn):
        web = make_txn("/orders")
        background = make_txn("nightly-job", web=False)
        web.end()
        background.end()

        assert web.final_name == "WebTransaction/Python/orders"
        assert background.final_name == "OtherTransaction/Python/nightly-job"

    def test_set_name_before_end(self, make_txn):
        txn = make_txn("/orders")
        assert txn.set_name("/checkout") is None
        txn.end()

        assert txn.final_name == "WebTransaction/Python/checkout"

    def test_ignored_transaction_is_not_merged(self, make_txn, consumer):
        reply = ConnectReply(
            run_id="run-1",
            url_rules=[MetricRule(match_expression=r"^/health", ignore=True)],
        )
        txn = make_txn("/health", reply=reply)

        assert txn.end() is None
        assert txn.ignored is True
        assert txn.final_name == ""
        assert consumer.calls == 0

    def test_invalid_collector_rule_does_not_lose_transaction(self, make_txn, consumer):
        reply = ConnectReply.model_validate(
            {
                "run_id": "run-1",
                "url_rules": [{"match_expression": "("}],
                "transaction_name_rules": [{"match_expression": "Python/ord", "replacement": "Python/o"}],
            }
        )
        txn = make_txn("/orders", reply=reply)

        assert txn.end() is None
        assert txn.final_name == "WebTransaction/Python/oers"
        assert consumer.calls == 1

    def test_standalone_transaction_without_consumer(self):
        from apmcore.transaction import Transaction, TransactionInput

        txn = Transaction(TransactionInput(), "job")
        assert txn.end() is None
        assert txn.final_name == "OtherTransaction/Python/job"


class TestAfterFinalize:
    """Every mutator is inert once the transaction has ended."""

    def test_mutators_return_already_finalized(self, make_txn, sink):
        txn = make_txn()
        txn.end()
        before = txn.snapshot()

        results = [
            txn.set_name("/other"),
            txn.add_attribute("key", "value"),
            txn.notice_error(ValueError("late")),
            txn.notice_error(None),
            txn.record_failure(RuntimeError("late")),
            txn.write_header(500),
            txn.end(),
        ]
        written = txn.write(b"late body")

        assert all(isinstance(r, AlreadyFinalizedError) for r in results)
        assert written == len(b"late body")
        assert txn.snapshot() == before

    def test_sink_still_receives_late_writes(self, make_txn, sink):
        txn = make_txn()
        txn.end()

        txn.write(b"tail")
        txn.write_header(503)

        assert bytes(sink.body) == b"tail"
        assert sink.codes == [503]
        assert txn.attributes["agent"].get("response_code") is None


class TestAttributes:
    """Tests for user and agent attributes."""

    def test_add_user_attribute(self, make_txn):
        txn = make_txn()
        assert txn.add_attribute("customer", "acme") is None
        assert txn.add_attribute("items", 3) is None
        assert txn.add_attribute("vip", True) is None

        assert txn.attributes["user"] == {"customer": "acme", "items": 3, "vip": True}

    def test_request_metadata_captured(self, make_txn):
        request = RequestInfo(
            method="POST",
            url="http://example.com/orders",
            headers={
                "content-type": "application/json",
                "Content-Length": "42",
                "Referer": "https://user:pw@shop.example.com/cart?session=secret#top",
                "Host": "example.com",
            },
        )
        txn = make_txn(request=request)
        agent = txn.attributes["agent"]

        assert agent["request_method"] == "POST"
        assert agent["request_content_type"] == "application/json"
        assert agent["request_content_length"] == 42
        assert agent["request_headers_referer"] == "https://shop.example.com/cart"
        assert agent["request_headers_host"] == "example.com"

    def test_malformed_urls_do_not_break_transaction(self, make_txn, consumer):
        request = RequestInfo(
            url="http://example.com:notaport/orders?id=1",
            headers={"Referer": "http://example.com:notaport/p"},
        )
        txn = make_txn(request=request)
        txn.write_header(500)

        assert txn.end() is None
        assert "request_headers_referer" not in txn.attributes["agent"]
        assert consumer.calls == 1
        [trace] = consumer.harvest.error_traces.errors
        assert trace.request_uri == ""

    def test_host_display_name_copied(self, make_txn):
        from apmcore.config import AgentSettings

        txn = make_txn(settings=AgentSettings(host_display_name="web-01"))
        assert txn.attributes["agent"]["host_display_name"] == "web-01"

    def test_queue_time_from_header(self, make_txn):
        queued_at = int((time.time() - 2.0) * 1_000_000)
        request = RequestInfo(headers={"X-Request-Start": f"t={queued_at}"})
        txn = make_txn(request=request)

        assert 1.9 <= txn.queuing <= 3.0


class TestUnrecoveredFailure:
    """Failures unwinding through the transaction scope."""

    def test_context_manager_reraises_same_exception(self, make_txn, consumer):
        txn = make_txn()
        failure = ValueError("boom")

        with pytest.raises(ValueError) as excinfo:
            with txn:
                raise failure

        assert excinfo.value is failure
        assert consumer.calls == 1
        assert txn.errors_seen == 1
        assert txn.errors[0].klass == PANIC_ERROR_KLASS
        assert "boom" in txn.errors[0].msg
        assert txn.zone == ApdexZone.FAILING

    def test_context_manager_clean_exit(self, make_txn, consumer):
        with make_txn() as txn:
            txn.add_attribute("ok", True)

        assert txn.finished is True
        assert txn.errors_seen == 0
        assert consumer.calls == 1

    def test_record_failure_hook(self, make_txn):
        txn = make_txn(web=False)
        try:
            raise KeyError("missing")
        except KeyError as exc:
            assert txn.record_failure(exc) is None
            txn.end()

        assert txn.errors[0].klass == PANIC_ERROR_KLASS
        assert "Traceback" in txn.errors[0].stack

    def test_record_failure_rejects_none(self, make_txn):
        assert isinstance(make_txn().record_failure(None), NilInputError)
