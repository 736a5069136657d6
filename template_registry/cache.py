"""Cache layers in front of the template store.

The cache backend is allowed to be down. Reads through ``BestEffortCache``
report a miss on failure and writes are attempted once with the failure
discarded, so callers only ever see store errors.
"""

import logging

from django.core import serializers
from django.core.serializers.base import DeserializationError
from django.core.cache import caches

from .models import Template

logger = logging.getLogger(__name__)

LATEST = "latest"


class BestEffortCache:
    """Thin wrapper over a Django cache alias with an attempt-and-discard contract.

    Every method logs backend errors at warning level and returns a neutral
    value instead of raising.
    """

    def __init__(self, alias="default"):
        self.alias = alias

    @property
    def backend(self):
        # Django cache handles are per-thread, so resolve on every call
        return caches[self.alias]

    def get(self, key):
        try:
            return self.backend.get(key)
        except Exception as e:
            logger.warning("Cache get failed for key=%s: %s", key, e)
            return None

    def attempt_set(self, key, value, timeout):
        try:
            self.backend.set(key, value, timeout)
        except Exception as e:
            logger.warning("Cache set failed for key=%s: %s", key, e)
            return False
        return True

    def attempt_delete_many(self, keys):
        keys = list(keys)
        if not keys:
            return True
        try:
            self.backend.delete_many(keys)
        except Exception as e:
            logger.warning("Cache delete failed for keys=%s: %s", keys, e)
            return False
        return True

    def ping(self):
        """Round-trip a sentinel key; used by the readiness probe."""
        try:
            self.backend.set("health:ping", "pong", 5)
            return self.backend.get("health:ping") == "pong"
        except Exception as e:
            logger.warning("Cache ping failed: %s", e)
            return False


def record_key(code, version, language):
    return f"template:{code}:{LATEST if version is None else version}:{language}"


def _dump_template(template):
    return serializers.serialize("json", [template])


def _load_template(raw):
    if not isinstance(raw, str):
        raise ValueError(f"expected serialized text, got {type(raw).__name__}")
    objects = list(serializers.deserialize("json", raw))
    if len(objects) != 1 or not isinstance(objects[0].object, Template):
        raise ValueError("cached payload does not hold exactly one template")
    return objects[0].object


class TemplateCache:
    """Read-through cache of resolved template records.

    Keys are ``template:<code>:<version|latest>:<language>``. Every populate
    uses the configured ``ttl``.
    """

    def __init__(self, store, cache, ttl):
        self.store = store
        self.cache = cache
        self.ttl = ttl

    def get(self, code, language=None, version=None):
        language = language or self.store.default_language
        key = record_key(code, version, language)

        raw = self.cache.get(key)
        if raw is not None:
            try:
                return _load_template(raw)
            except (DeserializationError, ValueError) as e:
                logger.warning("Discarding undecodable cache entry key=%s: %s", key, e)

        template = self.store.get(code, language=language, version=version)
        self.cache.attempt_set(key, _dump_template(template), self.ttl)
        return template

    def invalidate(self, code, version, language):
        """Drop the exact-version entry and the ``latest`` pointer for ``language``."""
        self.cache.attempt_delete_many([
            record_key(code, version, language),
            record_key(code, None, language),
        ])
