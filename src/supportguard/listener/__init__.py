"""
Telegram update listeners.

- **message_listener.py**: aiogram router that converts each group message
  and hands it to the moderation engine, logging any failure so polling
  continues.
"""
