"""Rendering of template bodies, with a write-through cache of the output.

A render is identified by ``(template_code, version, language, fingerprint)``
where the fingerprint is the SHA-256 of the canonical JSON form of the
variables. Canonical JSON sorts keys, so mappings that differ only in
insertion order share a cache entry.
"""

import hashlib
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from django.core.exceptions import ImproperlyConfigured
from django.core.serializers.json import DjangoJSONEncoder
from django.template import Context

from .exceptions import InvalidVariables, RenderedSizeExceeded, RenderFailure
from .models import TemplateType
from .store import parse_template_type

logger = logging.getLogger(__name__)

PUSH_REQUIRED_KEYS = ("title", "body")


def canonicalize(variables):
    """Deterministic JSON text for a variable mapping."""
    if not isinstance(variables, dict):
        raise InvalidVariables("Variables must be a JSON object")
    try:
        return json.dumps(
            variables,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            cls=DjangoJSONEncoder,
        )
    except (TypeError, ValueError) as e:
        raise InvalidVariables(f"Variables are not serializable: {e}") from e


def fingerprint(variables):
    return hashlib.sha256(canonicalize(variables).encode("utf-8")).hexdigest()


def _serialize(result):
    return json.dumps(result, separators=(",", ":"), ensure_ascii=False, cls=DjangoJSONEncoder)


class RenderCache:
    """Rendered outputs, plus an index of issued fingerprints per template identity.

    The index lets ``invalidate`` find every output of a template without
    scanning backend keys. Index updates are read-modify-write, so a render
    finishing while an invalidation runs can survive it until its TTL expires:
    invalidation is eventual, not instantaneous.
    """

    def __init__(self, cache, ttl):
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def entry_key(code, version, language, fp):
        return f"rendered:{code}:{version}:{language}:{fp}"

    @staticmethod
    def index_key(code, version, language):
        return f"rendered-index:{code}:{version}:{language}"

    def get(self, code, version, language, fp):
        key = self.entry_key(code, version, language, fp)
        raw = self.cache.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding undecodable rendered entry key=%s: %s", key, e)
            return None

    def attempt_store(self, code, version, language, fp, serialized):
        """Best effort; a failed write only costs a future cache miss."""
        if not self.cache.attempt_set(self.entry_key(code, version, language, fp), serialized, self.ttl):
            return
        index_key = self.index_key(code, version, language)
        issued = self.cache.get(index_key)
        if not isinstance(issued, list):
            issued = []
        if fp not in issued:
            issued.append(fp)
        # The index outlives every entry it points at
        self.cache.attempt_set(index_key, issued, self.ttl)

    def invalidate(self, code, version, language):
        index_key = self.index_key(code, version, language)
        issued = self.cache.get(index_key)
        if not isinstance(issued, list):
            issued = []
        keys = [self.entry_key(code, version, language, fp) for fp in issued]
        keys.append(index_key)
        self.cache.attempt_delete_many(keys)
        logger.debug("Invalidated %d rendered entries for %s/%s/%s", len(issued), code, version, language)


def _html_output(text):
    return {"rendered": text}


def _push_output(text):
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise RenderFailure(f"Invalid JSON after render: {e}") from e
    if not isinstance(payload, dict):
        raise RenderFailure("Rendered push template must be a JSON object")
    missing = [key for key in PUSH_REQUIRED_KEYS if key not in payload]
    if missing:
        raise RenderFailure(
            f"Push template must contain 'title' and 'body' fields (missing: {', '.join(missing)})"
        )
    return {"rendered": payload}


OUTPUT_BUILDERS = {
    TemplateType.EMAIL_HTML: _html_output,
    TemplateType.PUSH_JSON: _push_output,
}


class TemplateRenderer:
    def __init__(self, compiled_cache, render_cache, max_rendered_size_kb, render_timeout,
                 executor=None, output_builders=None, max_workers=None):
        self.compiled_cache = compiled_cache
        self.render_cache = render_cache
        self.max_rendered_size_kb = max_rendered_size_kb
        self.render_timeout = render_timeout
        self.output_builders = output_builders or OUTPUT_BUILDERS
        unhandled = set(TemplateType) - set(self.output_builders)
        if unhandled:
            raise ImproperlyConfigured(
                f"No output builder for template types: {sorted(t.value for t in unhandled)}"
            )
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="template-render"
        )

    def render(self, code, version, language, template_type, content, variables):
        """Render ``content`` for the given template identity.

        Returns ``{"rendered": str}`` for HTML email bodies and
        ``{"rendered": dict}`` for push payloads. Cached outputs are returned
        as stored, without re-checking their size. The size ceiling counts
        whole kilobytes (bytes // 1024), so a 1.5 KB output passes a 1 KB limit.
        """
        template_type = parse_template_type(template_type)
        fp = fingerprint(variables)

        cached = self.render_cache.get(code, version, language, fp)
        if cached is not None:
            return cached

        compiled = self.compiled_cache.get_or_compile(template_type, content)
        text = self._execute(compiled, variables, code)
        result = self.output_builders[template_type](text)

        serialized = _serialize(result)
        size_kb = len(serialized.encode("utf-8")) // 1024
        if size_kb > self.max_rendered_size_kb:
            logger.warning(
                "Rendered output of %s v%s (%s) is %d KB, limit %d KB",
                code, version, language, size_kb, self.max_rendered_size_kb,
            )
            raise RenderedSizeExceeded(
                f"Rendered size {size_kb} KB exceeds limit of {self.max_rendered_size_kb} KB"
            )

        self.render_cache.attempt_store(code, version, language, fp, serialized)
        return result

    def _execute(self, compiled, variables, code):
        # A timed out render keeps its worker thread until it finishes; the caller is released.
        # The timeout includes time queued for a worker, so once max_workers runaway bodies
        # hold the pool, every render fails until one of them finishes.
        # Context, not the engine, decides escaping when rendering a compiled template directly
        context = Context(variables, autoescape=compiled.engine.autoescape)
        future = self.executor.submit(compiled.render, context)
        try:
            return future.result(timeout=self.render_timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.error("Render of %s timed out after %ss", code, self.render_timeout)
            raise RenderFailure(f"Render timed out after {self.render_timeout}s") from None
        except Exception as e:
            logger.error("Render of %s failed: %s", code, e)
            raise RenderFailure(f"Template render error: {e}") from e

    def invalidate_cache(self, code, version, language):
        self.render_cache.invalidate(code, version, language)
