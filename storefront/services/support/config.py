# storefront/services/support/config.py
"""Configuration snapshot for the support chat orchestrator"""
from dataclasses import dataclass

from storefront.config.settings import Settings

DEFAULT_AI_ONLY_HANDOFF_ACK = (
    "I am the support assistant for this chat and I will keep helping you here. "
    "Please share your order number and any details, and I will check it right away."
)


@dataclass(frozen=True)
class SupportChatConfig:
    ai_only_mode: bool = False
    ai_key_configured: bool = False
    realtime_enabled: bool = True
    ai_only_handoff_ack: str = DEFAULT_AI_ONLY_HANDOFF_ACK

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupportChatConfig":
        return cls(
            ai_only_mode=settings.SUPPORT_AI_ONLY_MODE,
            ai_key_configured=bool(settings.DEEPSEEK_API_KEY),
            realtime_enabled=settings.SUPPORT_REALTIME_ENABLED,
            ai_only_handoff_ack=settings.SUPPORT_AI_ONLY_HANDOFF_ACK or DEFAULT_AI_ONLY_HANDOFF_ACK,
        )
