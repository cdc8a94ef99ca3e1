"""Kernel domain primitives (pure, zero I/O)."""

from filing_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]
