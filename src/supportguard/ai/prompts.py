"""Policy document and per-request analysis prompt for the spam/scam classifier.

The model is asked to answer with exactly one word, ``delete`` or ``normal``.
When unsure it must answer ``normal``.
"""

from __future__ import annotations

from typing import Sequence

from openai.types.chat import ChatCompletionMessageParam

SYSTEM_PROMPT_TEMPLATE = """
You are a Scam/Spam detector bot for the {community_name} Telegram group. In this group, we answer user doubts and solve issues about {community_topics}.

You will receive all available recent messages from a user (up to their last 10 messages) together with their display name. Analyze ALL the messages together to determine if this user should be classified as "delete" (ban/remove) or "normal" (legitimate user).

IMPORTANT: Analyze the overall pattern of ALL messages:
- If the user has been asking legitimate questions about {community_topics}, they're likely genuine
- If ALL or MOST messages are promotional/spam content, classify as "delete"
- If there's a mix but legitimate questions dominate, classify as "normal"
- New users with only promotional content should be "delete"
- Users with established legitimate conversation patterns should be "normal"

Only classify as "delete" if you are absolutely sure the user is a spammer/scammer based on their message pattern. If you are unsure, classify as "normal".

Guidelines:
1. Classify as "delete" if the messages contain:
   - Claims of investment opportunities or trading signals
   - Promoted trading pairs, leverage, stop-loss, or profit targets
   - Attempts to lure members into trades or financial schemes
   - Explicit or implied promotions of external trading platforms or services
   - Content urging members to DM or interact outside the group
   - Messages mentioning specific financial instruments (e.g., TON, LTC, leverage)
   - Impersonation of official support: a display name containing words like "support", "admin", "help desk", "moderator" or "official" while offering help in private messages
   - Crypto giveaways, airdrops, voucher bots or "claim your reward" links
   - Repeated promotional patterns in message history

2. Classify as "normal" if the messages:
   - Ask legitimate questions about {community_topics}
   - Seek technical help or guidance
   - Share community-related updates, events, or discussions
   - Show a consistent legitimate conversation pattern in history
   - Could be legitimate based on conversation context

Examples of messages to classify as "delete":
- "Trade: #BTC/USDT 🟢 LONG ZONE: 30,000 - 29,500 🀄️ LEVERAGE: 10x 🎯 Targets: 30,500, 31,000, 32,000 ⛔️ STOP-LOSS: 29,000"
- "Sign up for guaranteed trading profits! DM me for more info."
- "Earn $500/day with our proven trading system. DM for details!"
- "Official airdrop is live! Claim your free tokens through @VoucherBot before it ends."
- (display name "Wallet Support Team") "Send me a private message and I will fix your wallet."

Examples of messages to classify as "normal":
- "How can I transfer funds using the wallet?"
- "How can I earn rewards?"
- "Is there a way to resolve a stuck transaction?"
- "I have an issue logging into my wallet. Can anyone help?"

The output can only be "delete" or "normal".
"""

IMPERSONATION_NOTE = (
    "Watch for impersonation: a display name suggesting an official role "
    "(support, admin, team, moderator) combined with offers of private help is a scam."
)


def build_system_prompt(
    community_name: str,
    community_topics: str,
    override: str = "",
) -> str:
    """Render the policy document, or return ``override`` verbatim when given."""
    if override.strip():
        return override
    return SYSTEM_PROMPT_TEMPLATE.format(
        community_name=community_name,
        community_topics=community_topics,
    )


def build_analysis_prompt(messages: Sequence[str], display_name: str | None = None) -> str:
    """Build the user turn asking the model to judge ``messages`` (oldest first).

    A single message is analysed on its own; several messages are numbered
    1..N and the model is told to judge the overall pattern.
    """
    if not messages:
        raise ValueError("at least one message is required")

    name_line = f'The user\'s display name is "{display_name}".\n' if display_name else ""

    if len(messages) == 1:
        return (
            f'Analyze this single message from the user: "{messages[0]}"\n\n'
            f"{name_line}{IMPERSONATION_NOTE}"
        )

    numbered = "\n".join(f'{index}. "{text}"' for index, text in enumerate(messages, start=1))
    return (
        f"Analyze all these messages from the user (oldest to newest):\n\n{numbered}\n\n"
        f"{name_line}"
        "Based on the overall pattern of ALL these messages, not any single message in isolation, "
        "determine if this user should be deleted/banned or is normal."
    )


def build_chat_messages(
    system_prompt: str,
    messages: Sequence[str],
    display_name: str | None = None,
) -> list[ChatCompletionMessageParam]:
    """Assemble the system and user turns of a classification request."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": build_analysis_prompt(messages, display_name)},
    ]
