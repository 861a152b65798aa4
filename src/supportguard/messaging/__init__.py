"""
Messaging platform integration.

- **base.py**: ``PlatformClient`` protocol: delete, ban, send and role lookup.
- **telegram_platform.py**: aiogram-backed implementation and conversion of
  aiogram messages into ``InboundMessage``.
"""
