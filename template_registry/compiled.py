import hashlib
import logging
import threading

from django.template import Engine, TemplateSyntaxError

from .exceptions import RenderFailure
from .models import TemplateType

logger = logging.getLogger(__name__)


def content_hash(content):
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def default_engines():
    # HTML bodies autoescape interpolated values; push payloads are JSON text.
    return {
        TemplateType.EMAIL_HTML: Engine(autoescape=True),
        TemplateType.PUSH_JSON: Engine(autoescape=False),
    }


class CompiledTemplateCache:
    """Process-wide memo of compiled Django templates keyed by content hash.

    Entries are never evicted: the hash fully determines the compiled object,
    so an entry cannot go stale, but the map grows with the number of distinct
    template bodies seen by the process.

    Lookups read the dict without locking. The writer lock only serializes
    inserts; two threads compiling the same body concurrently both produce
    an equivalent object and the first insert wins.
    """

    def __init__(self, engines=None):
        self.engines = engines or default_engines()
        self._compiled = {}
        self._write_lock = threading.Lock()

    def __len__(self):
        return len(self._compiled)

    def get_or_compile(self, template_type, content):
        key = (template_type.value, content_hash(content))
        compiled = self._compiled.get(key)
        if compiled is not None:
            return compiled

        try:
            compiled = self.engines[template_type].from_string(content)
        except TemplateSyntaxError as e:
            logger.warning("Template compile failed hash=%s: %s", key[1][:16], e)
            raise RenderFailure(f"Template syntax error: {e}") from e

        with self._write_lock:
            return self._compiled.setdefault(key, compiled)
