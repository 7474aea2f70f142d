"""focus-timeline: a personal focus-session tracker (timed sessions, day timeline, deadline buckets)."""

__version__ = "0.1.0"
