"""Shared constants and helpers for tokenlock tests."""

T0 = 1_700_000_000

OWNER = "0x" + "a" * 40
DEPOSITOR = "0x" + "d" * 40
BENEFICIARY = "0x" + "b" * 40
STRANGER = "0x" + "e" * 40


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int):
        self.current_time += seconds

    def set(self, timestamp: int):
        self.current_time = timestamp
