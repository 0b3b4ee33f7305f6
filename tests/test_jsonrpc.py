"""Tests for JSON-RPC envelope parsing."""

from __future__ import annotations

import json

from clode.protocol.jsonrpc import MessageKind, encode_request, parse_frame


class TestParseFrame:
    """Classification of inbound frames."""

    def test_result_response(self) -> None:
        msg = parse_frame('{"jsonrpc":"2.0","id":3,"result":{"turn_id":"r1"}}')
        assert msg is not None
        assert msg.kind is MessageKind.RESPONSE
        assert msg.id == 3
        assert msg.result == {"turn_id": "r1"}
        assert not msg.is_error

    def test_null_result_is_success(self) -> None:
        msg = parse_frame('{"jsonrpc":"2.0","id":3,"result":null}')
        assert msg is not None
        assert msg.is_response()
        assert not msg.is_error

    def test_error_response(self) -> None:
        msg = parse_frame('{"jsonrpc":"2.0","id":4,"error":{"code":-1,"message":"no"}}')
        assert msg is not None
        assert msg.is_response()
        assert msg.is_error
        assert msg.error == {"code": -1, "message": "no"}

    def test_notification(self) -> None:
        msg = parse_frame('{"jsonrpc":"2.0","method":"turn/started","params":{"turn_id":"r1"}}')
        assert msg is not None
        assert msg.is_notification()
        assert msg.method == "turn/started"
        assert msg.params == {"turn_id": "r1"}

    def test_server_request(self) -> None:
        """An id with a method and no result is a request, not a response."""
        msg = parse_frame('{"jsonrpc":"2.0","id":"s1","method":"ping"}')
        assert msg is not None
        assert msg.is_request()
        assert msg.params == {}

    def test_bytes_frame(self) -> None:
        msg = parse_frame(b'{"jsonrpc":"2.0","method":"initialized"}')
        assert msg is not None
        assert msg.method == "initialized"

    def test_invalid_json(self) -> None:
        assert parse_frame("{not json") is None

    def test_non_object(self) -> None:
        assert parse_frame("[1, 2]") is None
        assert parse_frame('"hello"') is None

    def test_neither_response_nor_method(self) -> None:
        assert parse_frame('{"jsonrpc":"2.0","id":5}') is None
        assert parse_frame('{"jsonrpc":"2.0","method":42}') is None


class TestEncodeRequest:
    def test_envelope(self) -> None:
        data = json.loads(encode_request(7, "turn/interrupt", {"thread_id": "t1"}))
        assert data == {
            "jsonrpc": "2.0",
            "id": 7,
            "method": "turn/interrupt",
            "params": {"thread_id": "t1"},
        }

    def test_missing_params_sent_as_empty_object(self) -> None:
        data = json.loads(encode_request(8, "initialize"))
        assert data["params"] == {}
