"""In-memory stand-ins for external collaborators (AI, freight, Redis, realtime)"""
from storefront.core.exceptions import AIServiceError, FreightServiceError
from storefront.schemas.cart import FreightQuoteResponse
from storefront.services.ai.deepseek_client import ChatResult, DeepSeekClient


class StubChatClient:
    """Chat provider returning a canned reply (or a reply computed from the prompt)"""

    def __init__(self, reply="Happy to help with that.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def chat(self, messages, temperature=0.4):
        self.calls.append({"messages": messages, "temperature": temperature})
        if self.error:
            raise AIServiceError(self.error)
        return self.reply(messages) if callable(self.reply) else self.reply

    def try_chat(self, messages, temperature=0.4):
        try:
            return ChatResult.success(self.chat(messages, temperature))
        except AIServiceError as e:
            return ChatResult.failure(str(e))

    def translate(self, text, source, target):
        return self.chat([{"role": "user", "content": text}], 0.1)

    @staticmethod
    def locale_to_language(locale):
        return DeepSeekClient.locale_to_language(locale)


class StubTranslator:
    """Translation-only provider (no chat), mapping source text to output"""

    def __init__(self, mapping=None):
        self.mapping = mapping or {}
        self.calls = []

    def translate(self, text, source, target):
        self.calls.append((text, source, target))
        return self.mapping.get(text, f"[{target}] {text}")


class RecordingBroadcaster:
    def __init__(self):
        self.messages = []

    def broadcast_message(self, conversation, message):
        self.messages.append((conversation.uuid, message.id))
        return True


class StubFreightClient:
    """Freight API returning fixed carrier options, or failing"""

    def __init__(self, options=None, error=None):
        self.options = options or []
        self.error = error
        self.payloads = []

    def freight_calculate(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise FreightServiceError(self.error)
        return FreightQuoteResponse.model_validate({"code": 200, "result": True, "data": self.options})


class FakeRedis:
    """Just enough of redis.Redis (decode_responses=True) for the services under test"""

    def __init__(self):
        self.store = {}
        self.sets = {}
        self.expiries = {}
        self.published = []

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = str(value)
        if ex is not None:
            self.expiries[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            elif self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    def exists(self, *keys):
        return sum(1 for key in keys if key in self.store or key in self.sets)

    def sadd(self, key, *members):
        members_set = self.sets.setdefault(key, set())
        before = len(members_set)
        members_set.update(str(member) for member in members)
        return len(members_set) - before

    def srem(self, key, *members):
        members_set = self.sets.get(key, set())
        removed = 0
        for member in members:
            if str(member) in members_set:
                members_set.discard(str(member))
                removed += 1
        return removed

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def expire(self, key, seconds):
        self.expiries[key] = seconds
        return True

    def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 1
