"""
filing_queue -- Submission batch scheduling for government filings.

Decides which pending queue items are grouped into batches, which items
bypass batching (urgent escalation), how batches are claimed safely when
several workers run at once, and how failed items are retried or
abandoned.  Also reports point-in-time queue statistics.

Architecture:
    domain/     pure types and functions (grouping, backoff, statistics)
    models/     SQLAlchemy ORM tables
    selectors/  read-only snapshot queries
    services/   claim, escalation, retry, statistics, job lifecycle, driver
    scheduler   the exposed passes; orchestrator wires everything together

Invariants:
    - A queue item is claimed into at most one job, and only through an
      all-or-nothing claim transaction.
    - Every batch respects its jurisdiction's portal limit.
    - Only the retry pass moves failed items back to ready.
"""
