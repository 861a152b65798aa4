"""
SupportGuard - AI-assisted spam and scam moderation for a Telegram support group

SupportGuard watches one support group, classifies each sender's recent
messages with a language model, and removes and bans senders whose messages
look like spam or scams. Uncertainty always resolves in the sender's favour.

Core Components:

- **History Store**: Per-user ring buffer of recent texts with per-user locking
- **Classifier Gateway**: Policy prompt plus one chat completion per request
- **Retry Policy**: Bounded retries and substring verdict normalization
- **Moderation Engine**: Bypass rules, story and text branches, and ordered
  delete / notify / ban enforcement

Usage:
    from supportguard.main import main
    main()  # Validates configuration and starts long polling
"""
