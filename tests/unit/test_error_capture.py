"""
Unit Tests - Error Capture

Counting, enablement gates, redaction and response-code errors.
"""

from apmcore.config import AgentSettings, ConnectReply, ErrorCollectorSettings
from apmcore.core.exceptions import (
    LocallyDisabledError,
    NilInputError,
    RemotelyDisabledError,
)
from apmcore.transaction.errors import (
    HIGH_SECURITY_ERROR_MSG,
    MAX_TXN_ERRORS,
    ErrorCollection,
    ErrorRecord,
    error_from_exception,
    error_from_response_code,
)


class TestNoticeError:
    """Tests for Transaction.notice_error."""

    def test_stores_error(self, make_txn):
        txn = make_txn()
        assert txn.notice_error(ValueError("bad input")) is None

        [record] = txn.errors
        assert record.klass == "ValueError"
        assert record.msg == "bad input"
        assert record.when is not None
        assert record.stack

    def test_nil_error(self, make_txn):
        txn = make_txn()
        assert isinstance(txn.notice_error(None), NilInputError)
        assert txn.errors_seen == 0

    def test_locally_disabled_still_counts(self, make_txn):
        settings = AgentSettings(error_collector=ErrorCollectorSettings(enabled=False))
        txn = make_txn(settings=settings)

        assert isinstance(txn.notice_error(ValueError("x")), LocallyDisabledError)
        assert txn.errors_seen == 1
        assert txn.errors == ()

    def test_remotely_disabled_still_counts(self, make_txn):
        txn = make_txn(reply=ConnectReply(run_id="run-1", collect_errors=False))

        assert isinstance(txn.notice_error(ValueError("x")), RemotelyDisabledError)
        assert txn.errors_seen == 1
        assert txn.errors == ()

    def test_both_gates_closed(self, make_txn):
        txn = make_txn(
            settings=AgentSettings(error_collector=ErrorCollectorSettings(enabled=False)),
            reply=ConnectReply(run_id="run-1", collect_errors=False),
        )

        assert isinstance(txn.notice_error(ValueError("x")), LocallyDisabledError)
        assert txn.notice_error(ValueError("y")) is not None
        assert txn.errors_seen == 2
        assert txn.errors == ()

    def test_high_security_redacts(self, make_txn):
        txn = make_txn(settings=AgentSettings(high_security=True))
        txn.notice_error(RuntimeError("password=hunter2"))
        txn.write_header(500)

        assert len(txn.errors) == 2
        assert all(e.msg == HIGH_SECURITY_ERROR_MSG for e in txn.errors)

    def test_capacity_bounded_counter_not(self, make_txn):
        txn = make_txn()
        for i in range(MAX_TXN_ERRORS + 3):
            assert txn.notice_error(ValueError(str(i))) is None

        assert len(txn.errors) == MAX_TXN_ERRORS
        assert txn.errors_seen == MAX_TXN_ERRORS + 3

    def test_qualified_class_name(self):
        class PaymentDeclined(Exception):
            pass

        record = error_from_exception(PaymentDeclined("card"))
        assert record.klass.endswith(":TestNoticeError.test_qualified_class_name.<locals>.PaymentDeclined")


class TestResponseCodes:
    """Tests for status capture through write_header/write."""

    def test_404_twice_captures_once(self, make_txn, sink):
        txn = make_txn()
        txn.write_header(404)
        txn.write_header(404)

        assert sink.codes == [404, 404]
        assert len(txn.errors) == 1
        assert txn.errors_seen == 1
        assert txn.errors[0].klass == "404"
        assert txn.errors[0].msg == "Not Found"
        assert txn.attributes["agent"]["response_code"] == "404"

    def test_success_status_is_not_error(self, make_txn):
        txn = make_txn()
        txn.write_header(201)

        assert txn.errors_seen == 0
        assert txn.attributes["agent"]["response_code"] == "201"

    def test_ignored_status_codes(self, make_txn):
        settings = AgentSettings(error_collector=ErrorCollectorSettings(ignore_status_codes=[404]))
        txn = make_txn(settings=settings)
        txn.write_header(404)

        assert txn.errors_seen == 0

    def test_first_write_implies_200(self, make_txn, sink):
        txn = make_txn()
        assert txn.write(b"hello") == 5
        txn.write_header(500)

        assert bytes(sink.body) == b"hello"
        assert txn.attributes["agent"]["response_code"] == "200"
        assert txn.errors_seen == 0

    def test_response_headers_recorded(self, make_txn, sink):
        sink.headers.update({"content-type": "text/html", "Content-Length": "12"})
        txn = make_txn()
        txn.write_header(200)
        agent = txn.attributes["agent"]

        assert agent["response_headers_content_type"] == "text/html"
        assert agent["response_headers_content_length"] == 12

    def test_unknown_status_code(self):
        record = error_from_response_code(599)
        assert record.klass == "599"
        assert record.msg == ""


class TestErrorCollection:
    """Tests for the bounded per-transaction store."""

    def test_starts_empty(self):
        collection = ErrorCollection(capacity=2)
        assert len(collection) == 0
        assert list(collection) == []

    def test_drops_beyond_capacity(self):
        collection = ErrorCollection(capacity=2)
        results = [collection.add(ErrorRecord(klass="E", msg=str(i))) for i in range(3)]

        assert results == [True, True, False]
        assert [r.msg for r in collection] == ["0", "1"]
