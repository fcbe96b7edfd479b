"""Shared constants and hook doubles for clrange tests."""

from clrange.core.defi.hook_gateway import (
    AFTER_UPDATE_RANGE_ACK,
    BEFORE_UPDATE_RANGE_ACK,
    BaseRangeUpdateHooks,
)

ALICE = "0xA11ce00000000000000000000000000000000001"
BOB = "0xB0b0000000000000000000000000000000000002"
CAROL = "0xCa401000000000000000000000000000000000003"

TOKEN_A = "0xTokenA"
TOKEN_B = "0xTokenB"

LIQUIDITY = 10**18


class RecordingHooks(BaseRangeUpdateHooks):
    """Acknowledging hook contract that records every callback."""

    def __init__(self):
        self.calls = []

    def before_update_range(self, caller, pool_key, params, data):
        self.calls.append(("before", caller, params, data))
        return BEFORE_UPDATE_RANGE_ACK

    def after_update_range(self, caller, pool_key, params, position, data):
        self.calls.append(("after", caller, params, position, data))
        return AFTER_UPDATE_RANGE_ACK


class RejectingHooks(RecordingHooks):
    """Records calls, then answers the after callback with a wrong selector."""

    def after_update_range(self, caller, pool_key, params, position, data):
        super().after_update_range(caller, pool_key, params, position, data)
        return b"\x00\x00\x00\x00"


class RaisingHooks(RecordingHooks):
    def before_update_range(self, caller, pool_key, params, data):
        super().before_update_range(caller, pool_key, params, data)
        raise RuntimeError("hook exploded")
