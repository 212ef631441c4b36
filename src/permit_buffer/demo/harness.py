"""Demo harness: N producers and M consumers over one BoundedBuffer.

Producers each push a fixed number of seeded payloads. Consumers split
the total between them, so every worker finishes on its own and the
run ends without relying on shutdown. Shutdown and drain still run
afterwards so a stuck run ends cleanly and any leftovers show up in
the result.

The harness checks conservation at the end:
    produced == consumed + drained
"""
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field

from permit_buffer.concurrency.backpressure import Backpressure
from permit_buffer.concurrency.bounded_buffer import BoundedBuffer
from permit_buffer.domain.errors import InvalidConfiguration
from permit_buffer.domain.types import BufferStats
from permit_buffer.workers.worker import ConsumerWorker, ProducerWorker


@dataclass(slots=True)
class DemoResult:
    """Counts and timing from a single demo run."""
    capacity: int
    producers: int
    consumers: int
    items_produced: int
    items_consumed: int
    items_drained: int
    timeouts: int
    elapsed_ms: float
    items_per_sec: float
    stats: BufferStats
    errors: list[str] = field(default_factory=list)

    @property
    def conserved(self) -> bool:
        return self.items_produced == self.items_consumed + self.items_drained

    @property
    def ok(self) -> bool:
        return not self.errors and self.conserved


def _split(total: int, parts: int) -> list[int]:
    base, extra = divmod(total, parts)
    return [base + (1 if i < extra else 0) for i in range(parts)]


def run_demo(
    capacity: int = 4,
    producers: int = 2,
    consumers: int = 2,
    items_per_producer: int = 1_000,
    timeout: float | None = None,
    seed: int = 42,
    join_timeout: float = 30.0,
) -> DemoResult:
    """Run producers and consumers to completion and return the tally.

    timeout=None blocks on backpressure; otherwise acquires time out
    after that many seconds and the workers retry.
    """
    if producers <= 0 or consumers <= 0:
        raise InvalidConfiguration("need at least one producer and one consumer")
    if items_per_producer < 0:
        raise InvalidConfiguration(
            f"items_per_producer must be >= 0, got {items_per_producer}"
        )

    rng = random.Random(seed)
    backpressure = Backpressure.block() if timeout is None else Backpressure.timeout(timeout)
    buffer = BoundedBuffer(capacity, backpressure)

    producer_workers = [
        ProducerWorker(
            buffer,
            [(p, n, rng.getrandbits(32)) for n in range(items_per_producer)],
            name=f"producer-{p}",
            retry_on_timeout=True,
        )
        for p in range(producers)
    ]
    quotas = _split(producers * items_per_producer, consumers)
    rng.shuffle(quotas)
    consumer_workers = [
        ConsumerWorker(buffer, limit=quota, name=f"consumer-{c}", retry_on_timeout=True)
        for c, quota in enumerate(quotas)
    ]
    workers = [*producer_workers, *consumer_workers]

    start = time.perf_counter()
    for w in workers:
        w.start()
    deadline = start + join_timeout
    for w in workers:
        w.join(timeout=max(0.0, deadline - time.perf_counter()))
    elapsed_ms = (time.perf_counter() - start) * 1000

    errors: list[str] = []
    stuck = [w for w in workers if w.alive]
    buffer.shutdown()
    for w in stuck:
        w.stop()
        w.join(timeout=5.0)
        errors.append(f"{w.name} did not finish within {join_timeout}s")
    drained = buffer.drain()
    for w in workers:
        if w.error is not None:
            errors.append(f"{w.name}: {w.error}")

    consumed = sum(w.processed for w in consumer_workers)
    return DemoResult(
        capacity=capacity,
        producers=producers,
        consumers=consumers,
        items_produced=sum(w.processed for w in producer_workers),
        items_consumed=consumed,
        items_drained=len(drained),
        timeouts=sum(w.timeouts for w in workers),
        elapsed_ms=elapsed_ms,
        items_per_sec=consumed / (elapsed_ms / 1000) if elapsed_ms > 0 else 0.0,
        stats=buffer.stats(),
        errors=errors,
    )
