"""
Moderation decisions and enforcement for SupportGuard.

- **moderation_engine.py**: ``ModerationEngine`` and ``EngineConfig``. Applies
  owner/whitelist/admin bypass rules, routes shared stories straight to
  enforcement, and classifies a sender's recent texts before enforcing a
  ``delete`` verdict. Fails open when classification cannot complete.

- **enforcement.py**: Executes delete, notify, ban and role lookups against
  the platform, turning failures into logged ``ActionResult``s, and formats
  the audit chat notifications.
"""
