"""Domain errors raised by storefront services"""


class StorefrontError(Exception):
    """Base class for all storefront service errors"""


class ConfigurationError(StorefrontError):
    """Required operator configuration is missing or invalid"""


class MissingDefaultWarehouseError(ConfigurationError):
    """No default warehouse is configured, so domestic shipping cannot be priced"""

    def __init__(self, message: str = "No default warehouse is configured."):
        super().__init__(message)


class AIServiceError(StorefrontError):
    """The chat completion provider is unconfigured or returned an unusable response"""


class RateLimitExceeded(AIServiceError):
    """Local rate limit for the chat completion provider was hit"""


class FreightServiceError(StorefrontError):
    """The supplier freight quote API failed"""


class ConversationNotFoundError(StorefrontError):
    """Support conversation does not exist"""


class ConversationClosedError(StorefrontError):
    """Customer wrote into a resolved or closed conversation; a new one must be started"""

    def __init__(self, conversation_uuid: str):
        self.conversation_uuid = conversation_uuid
        super().__init__(f"Conversation {conversation_uuid} is no longer active.")
