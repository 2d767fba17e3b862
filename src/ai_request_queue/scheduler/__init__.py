# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Scheduling for admitted requests.

This module provides:
- PriorityScheduler: Priority + FIFO dispatcher with bounded concurrency
  and a sliding dispatch cap
- QueueStats: Lifecycle counters with generation-based reset
"""

from .priority import PriorityScheduler
from .stats import QueueStats

__all__ = ["PriorityScheduler", "QueueStats"]
