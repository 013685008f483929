"""
Tests for MessagePack encoder module.
"""

import msgpack
import pytest

from bretton.logic.enums import GamePhase, VoteChoice
from bretton.messaging.encoder import MAX_BUFFER_LEN, MAX_MAP_LEN, DecodeError, decode, encode


class TestRoundTrip:
    def test_round_trip_action(self) -> None:
        data = {"type": "vote", "room_id": "room_abc", "choice": VoteChoice.FOR}

        assert decode(encode(data)) == data

    def test_round_trip_nested_snapshot(self) -> None:
        data = {
            "type": "room_state",
            "room": {"phase": GamePhase.PHASE2, "players": {}, "ready_players": ["player_a"], "host_id": None},
        }

        assert decode(encode(data)) == data


class TestIntegerKeyConversion:
    def test_year_keys_become_strings(self) -> None:
        data = {"yearly_data": {1946: {"USA": {"gdp_growth": 3.0}}, 1947: {}}}

        assert decode(encode(data)) == {"yearly_data": {"1946": {"USA": {"gdp_growth": 3.0}}, "1947": {}}}

    def test_integer_keys_inside_lists(self) -> None:
        data = {"rounds": [{1: "a"}]}
        assert decode(encode(data)) == {"rounds": [{"1": "a"}]}


class TestDecodeLimits:
    def test_oversized_payload_rejected(self) -> None:
        with pytest.raises(DecodeError, match="too large"):
            decode(b"\x80" * (MAX_BUFFER_LEN + 1))

    def test_custom_buffer_limit(self) -> None:
        frame = encode({"type": "room_state", "room": {"name": "x" * 200}})
        with pytest.raises(DecodeError):
            decode(frame, max_buffer_len=100)
        assert decode(frame, max_buffer_len=1024)["room"]["name"] == "x" * 200

    def test_too_many_map_entries_rejected(self) -> None:
        frame = msgpack.packb({f"k{i}": i for i in range(MAX_MAP_LEN + 1)})
        with pytest.raises(DecodeError):
            decode(frame)

    def test_non_map_rejected(self) -> None:
        with pytest.raises(DecodeError, match="expected map"):
            decode(msgpack.packb([1, 2, 3]))

    def test_integer_map_keys_rejected(self) -> None:
        with pytest.raises(DecodeError):
            decode(msgpack.packb({1: "a"}))

    def test_malformed_bytes_rejected(self) -> None:
        with pytest.raises(DecodeError):
            decode(b"\xc1")

    def test_trailing_data_rejected(self) -> None:
        with pytest.raises(DecodeError):
            decode(msgpack.packb({"a": 1}) + b"\x00")
