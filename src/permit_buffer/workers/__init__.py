"""Background-thread producer and consumer roles for BoundedBuffer."""
from permit_buffer.workers.worker import ConsumerWorker, ProducerWorker

__all__ = ["ConsumerWorker", "ProducerWorker"]
