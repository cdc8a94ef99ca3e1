"""
filing_kernel -- Shared infrastructure for the filing submission scheduler.

Provides the database base classes and engine/session management, the
injectable clock, structured JSON logging, and the typed exception
hierarchy.  Nothing in this package knows about queue items, jobs, or
scheduling policy.

Architecture:
    filing_kernel is the lowest layer.  filing_config and filing_queue
    import from it; it imports from neither.
"""
