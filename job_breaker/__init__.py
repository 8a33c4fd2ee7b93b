"""
EZQ job breaker.

Decomposes a job into tasks and enqueues each task, wrapped in the EZQ
preamble, onto an SQS work queue. Files referenced by tasks are pushed to S3
alongside the enqueue stream.
"""

__version__ = "0.3.0"
