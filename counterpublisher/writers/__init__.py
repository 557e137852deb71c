from counterpublisher.writers.cloudwatch import CloudWatchWriter
from counterpublisher.writers.writer_base import CounterSampleWriterBase, CounterSampleWriterInterface, NoopWriter

__all__ = ["CloudWatchWriter", "CounterSampleWriterBase", "CounterSampleWriterInterface", "NoopWriter"]
