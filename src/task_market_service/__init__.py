"""Task marketplace service: tasks, bids and bid-count bookkeeping."""

__version__ = "0.1.0"
