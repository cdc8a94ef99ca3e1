"""
Typed Exception Hierarchy for the Filing Scheduler.

Every error has a typed class (catch by type, not message), a class-level
``code`` attribute (machine-readable), and structured attributes carrying
the context needed by logs and the operator dashboard.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FilingKernelError (base)
    |
    +-- ClaimError
    |   +-- PartialClaimError
    |   +-- EmptyBatchError
    |   +-- StoreUnavailableError
    |
    +-- ConfigurationError
    |   +-- ConfigurationMissingError
    |
    +-- RetryError
    |   +-- RetryExhaustedError
    |
    +-- JobError
        +-- JobNotFoundError
        +-- InvalidJobTransitionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Claim           | PARTIAL_CLAIM               | Some batch members taken by another worker
                | EMPTY_BATCH                 | Batch has no members
                | STORE_UNAVAILABLE           | Persistence layer failed or timed out
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_MISSING       | No portal limit for a jurisdiction
----------------|-----------------------------|-----------------------------------------
Retry           | RETRY_EXHAUSTED             | Item reached the attempt ceiling
----------------|-----------------------------|-----------------------------------------
Job             | JOB_NOT_FOUND               | Job ID doesn't exist
                | INVALID_JOB_TRANSITION      | Lifecycle transition not permitted

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CLAIM FAILURES NEVER ABORT A PASS:

    try:
        job_id = claims.claim(batch, submitted_by)
    except ClaimError as e:
        errors.append(str(e))   # the pass continues with the next batch

2. CONFIGURATION_MISSING IS RECOVERED, NOT RAISED PAST THE PROVIDER:

    The portal limit provider falls back to the default batch size and logs
    the ConfigurationMissingError code for visibility.

3. RETRY_EXHAUSTED IS A BUSINESS OUTCOME:

    The item moves to cancelled; the error object is attached to the log
    record only.
"""


class FilingKernelError(Exception):
    """
    Base exception for all filing scheduler errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FILING_KERNEL_ERROR"


# Claim-related exceptions


class ClaimError(FilingKernelError):
    """Base exception for claim transaction failures."""

    code: str = "CLAIM_ERROR"


class PartialClaimError(ClaimError):
    """A batch could not be claimed in full because of concurrent contention.

    The transaction (job included) was rolled back; the unclaimed members
    remain ready and are reconsidered on the next pass.
    """

    code: str = "PARTIAL_CLAIM"

    def __init__(self, batch_id: str, claimed: int, expected: int):
        self.batch_id = batch_id
        self.claimed = claimed
        self.expected = expected
        super().__init__(
            f"Batch {batch_id}: claimed {claimed}/{expected} items. "
            "Partial claim detected - another worker claimed some items. "
            "Transaction rolled back."
        )


class EmptyBatchError(ClaimError):
    """A batch with no members was submitted for claiming."""

    code: str = "EMPTY_BATCH"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id} has no queue items to claim")


class StoreUnavailableError(ClaimError):
    """The persistence layer failed while performing an operation."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store unavailable during {operation}: {reason}")


# Configuration-related exceptions


class ConfigurationError(FilingKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class ConfigurationMissingError(ConfigurationError):
    """No portal limit is configured for a jurisdiction."""

    code: str = "CONFIGURATION_MISSING"

    def __init__(self, jurisdiction_code: str):
        self.jurisdiction_code = jurisdiction_code
        super().__init__(
            f"No portal limit configured for jurisdiction {jurisdiction_code}"
        )


# Retry-related exceptions


class RetryError(FilingKernelError):
    """Base exception for retry errors."""

    code: str = "RETRY_ERROR"


class RetryExhaustedError(RetryError):
    """A queue item reached the maximum number of attempts."""

    code: str = "RETRY_EXHAUSTED"

    def __init__(self, queue_item_id: str, failure_count: int, max_attempts: int):
        self.queue_item_id = queue_item_id
        self.failure_count = failure_count
        self.max_attempts = max_attempts
        super().__init__(
            f"Queue item {queue_item_id} exhausted retries "
            f"({failure_count}/{max_attempts} attempts)"
        )


# Job-related exceptions


class JobError(FilingKernelError):
    """Base exception for submission job errors."""

    code: str = "JOB_ERROR"


class JobNotFoundError(JobError):
    """Submission job with given ID was not found."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Submission job not found: {job_id}")


class InvalidJobTransitionError(JobError):
    """A job lifecycle transition is not permitted from its current status."""

    code: str = "INVALID_JOB_TRANSITION"

    def __init__(self, job_id: str, from_status: str, to_status: str):
        self.job_id = job_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Job {job_id} cannot move from {from_status} to {to_status}"
        )
