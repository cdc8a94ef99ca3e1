"""Read-only query selectors for the submission queue."""

from filing_queue.selectors.queue_selector import QueueSelector

__all__ = ["QueueSelector"]
