"""The five operations exposed to the HTTP layer.

``TemplateService`` wires the store, the record cache and the renderer
together and owns cache invalidation on mutation. One instance is built per
process by ``TemplateRegistryConfig.ready`` via ``build_template_service``.
"""

import logging

from django.conf import settings

from .cache import BestEffortCache, TemplateCache
from .compiled import CompiledTemplateCache
from .renderer import RenderCache, TemplateRenderer
from .store import TemplateStore

logger = logging.getLogger(__name__)


class TemplateService:
    def __init__(self, store, template_cache, renderer):
        self.store = store
        self.template_cache = template_cache
        self.renderer = renderer

    def create(self, code, template_type, language, content, meta=None, created_by=None):
        template = self.store.create(
            code, template_type, language, content, meta=meta, created_by=created_by
        )
        self._invalidate(template.template_code, template.version, template.language)
        return template

    def get(self, code, language=None, version=None):
        return self.template_cache.get(code, language=language, version=version)

    def render(self, code, variables, language=None, version=None):
        template = self.template_cache.get(code, language=language, version=version)
        rendered = self.renderer.render(
            template.template_code,
            template.version,
            template.language,
            template.template_type,
            template.content,
            variables,
        )
        return template, rendered

    def list_versions(self, code):
        return self.store.list_versions(code)

    def soft_delete(self, code, version):
        languages = self.store.soft_delete(code, version)
        for language in sorted(languages):
            self._invalidate(code, version, language)
        return languages

    def _invalidate(self, code, version, language):
        self.template_cache.invalidate(code, version, language)
        self.renderer.invalidate_cache(code, version, language)
        logger.debug("Invalidated caches for %s v%s (%s)", code, version, language)


def build_template_service(cache_alias="default"):
    """Construct the process-scoped service from Django settings."""
    cache = BestEffortCache(cache_alias)
    store = TemplateStore(
        include_inactive_versions=settings.TEMPLATES_LIST_INCLUDE_INACTIVE,
        max_allocation_attempts=settings.TEMPLATE_VERSION_ALLOCATION_ATTEMPTS,
        default_language=settings.DEFAULT_TEMPLATE_LANGUAGE,
    )
    renderer = TemplateRenderer(
        compiled_cache=CompiledTemplateCache(),
        render_cache=RenderCache(cache, ttl=settings.RENDERED_CACHE_TTL),
        max_rendered_size_kb=settings.MAX_RENDERED_SIZE_KB,
        render_timeout=settings.RENDER_TIMEOUT,
        max_workers=settings.RENDER_WORKERS,
    )
    return TemplateService(
        store=store,
        template_cache=TemplateCache(store, cache, ttl=settings.TEMPLATE_CACHE_TTL),
        renderer=renderer,
    )
