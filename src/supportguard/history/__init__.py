"""
Per-user message history for moderation context.

- **history_store.py**: Bounded ring buffer of each sender's recent texts with
  a per-user asyncio lock, so a user's fetch-then-append exchange can never
  interleave with another of their own messages. Also defines the
  ``HistorySource`` protocol the moderation engine depends on.

- **prune_scheduler.py**: Optional background task dropping users who have
  been silent longer than the configured idle TTL.
"""
