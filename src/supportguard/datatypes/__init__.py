"""
Plain data structures shared across SupportGuard.

- **moderation_datatypes.py**: Verdicts, member roles, inbound message shape,
  stored message records, and the results of moderation actions.
- **errors.py**: Exception taxonomy for configuration, classification and
  platform action failures.
"""
