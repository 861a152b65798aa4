"""
Utility helpers for SupportGuard.

- **logger.py**: Centralized logging configuration with coloured console output
  through prompt_toolkit, a rotating per-session log file, process-wide
  exception hooks for threads and the asyncio event loop, and suppression of
  chatty third-party loggers (aiogram, httpx, openai).
"""
