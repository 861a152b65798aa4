"""
Classification against the external language model.

- **prompts.py**: The scam/spam policy document (templated with the
  community's name and topics) and the per-request analysis prompt, which
  treats one message on its own and several messages as a numbered pattern.

- **classifier_gateway.py**: One ``AsyncOpenAI`` chat completion per call,
  bounded by a timeout. Returns the raw reply trimmed and lower-cased and
  raises ``ProviderError`` on any provider failure.

- **retry_policy.py**: Retries the gateway up to a fixed number of attempts,
  normalizing replies to ``delete`` / ``normal`` by substring, and raises
  ``ClassificationExhausted`` when no attempt yields a verdict.
"""
