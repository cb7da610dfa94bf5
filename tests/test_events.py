"""Tests for decoding raw OracleRequest logs."""

import pytest

from oracles.errors import EventDecodeFailure
from oracles.events import StatusRequestEvent, decode_status_request
from tests.fakes import request_event


def test_decode_log_shape():
    event = decode_status_request(request_event(3, block=17))
    assert event == StatusRequestEvent(
        index=3, airline="0xairline", flight="ND1309", timestamp=1893456000, block_number=17,
    )


def test_decode_bare_args():
    event = decode_status_request(
        {"index": 0, "airline": "0xa", "flight": "X1", "timestamp": 1}
    )
    assert event.index == 0
    assert event.block_number is None


def test_decode_numeric_strings_and_integer_flight():
    event = decode_status_request(
        {"index": "4", "airline": "0xa", "flight": 1309, "timestamp": "1893456000"}
    )
    assert (event.index, event.flight, event.timestamp) == (4, 1309, 1893456000)


def test_eq_is_by_value():
    assert decode_status_request(request_event(1)) == decode_status_request(request_event(1))


@pytest.mark.parametrize("raw", [
    None,
    "OracleRequest",
    [1, "0xa", "X", 1],
    {"args": "nope"},
    {"index": 1, "airline": "0xa", "flight": "X"},
    {"index": None, "airline": "0xa", "flight": "X", "timestamp": 1},
    {"index": True, "airline": "0xa", "flight": "X", "timestamp": 1},
    {"index": -1, "airline": "0xa", "flight": "X", "timestamp": 1},
    {"index": 1.5, "airline": "0xa", "flight": "X", "timestamp": 1},
    {"index": 1, "airline": "", "flight": "X", "timestamp": 1},
    {"index": 1, "airline": 7, "flight": "X", "timestamp": 1},
    {"index": 1, "airline": "0xa", "flight": "", "timestamp": 1},
    {"index": 1, "airline": "0xa", "flight": ["X"], "timestamp": 1},
    {"index": 1, "airline": "0xa", "flight": "X", "timestamp": "soon"},
    {"index": "²", "airline": "0xa", "flight": "X", "timestamp": 1},
    {"index": "--5", "airline": "0xa", "flight": "X", "timestamp": 1},
    {"event": "OracleRequest", "blockNumber": "0x10",
     "args": {"index": 1, "airline": "0xa", "flight": "X", "timestamp": 1}},
])
def test_decode_rejects_malformed(raw):
    with pytest.raises(EventDecodeFailure):
        decode_status_request(raw)


def test_decode_failure_is_a_value_error():
    with pytest.raises(ValueError):
        decode_status_request({})
