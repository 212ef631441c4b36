"""Backpressure strategy: what a caller does when no permit is free.

    Backpressure.block()        wait until a permit arrives (default)
    Backpressure.timeout(0.5)   wait up to 0.5s, then raise Cancelled
    Backpressure.fail_fast()    never wait, raise Cancelled at once

The strategy only decides the acquire timeout. The permit protocol is
the same in every mode. A per-call timeout overrides it for one call;
pass math.inf to block without limit on a timeout or fail-fast buffer.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto

from permit_buffer.domain.errors import InvalidConfiguration


class BackpressureMode(Enum):
    BLOCK = auto()
    TIMEOUT = auto()
    FAIL_FAST = auto()


@dataclass(frozen=True, slots=True)
class Backpressure:
    mode: BackpressureMode = BackpressureMode.BLOCK
    seconds: float | None = None

    def __post_init__(self) -> None:
        if self.mode is BackpressureMode.TIMEOUT:
            if self.seconds is None or self.seconds < 0:
                raise InvalidConfiguration(
                    f"timeout backpressure needs seconds >= 0, got {self.seconds!r}"
                )
        elif self.seconds is not None:
            raise InvalidConfiguration(
                f"{self.mode.name} backpressure takes no seconds"
            )

    @classmethod
    def block(cls) -> Backpressure:
        return cls(BackpressureMode.BLOCK)

    @classmethod
    def timeout(cls, seconds: float) -> Backpressure:
        return cls(BackpressureMode.TIMEOUT, seconds)

    @classmethod
    def fail_fast(cls) -> Backpressure:
        return cls(BackpressureMode.FAIL_FAST)

    def resolve(self, override: float | None = None) -> float | None:
        """Acquire timeout to use. A per-call override wins.

        None means "no override", so math.inf is how a caller asks to
        wait without limit regardless of the mode.
        """
        if override is not None:
            if override < 0:
                raise InvalidConfiguration(f"timeout must be >= 0, got {override}")
            if math.isinf(override):
                return None
            return override
        if self.mode is BackpressureMode.TIMEOUT:
            return self.seconds
        if self.mode is BackpressureMode.FAIL_FAST:
            return 0.0
        return None
