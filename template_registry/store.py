"""Durable, versioned template records.

``TemplateStore`` is the only component that talks to the database. It owns
version allocation, which must stay gap-free and duplicate-free per
``(template_code, language)`` even when creates race each other.
"""

import functools
import json
import logging

from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from .exceptions import (
    InvalidContent,
    InvalidTemplateType,
    TemplateNotFound,
    TransientBackendFailure,
)
from .models import Template, TemplateType

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


def parse_template_type(value):
    """Return the ``TemplateType`` for ``value`` or raise ``InvalidTemplateType``."""
    if isinstance(value, TemplateType):
        return value
    try:
        return TemplateType(value)
    except ValueError:
        raise InvalidTemplateType(f"Unrecognized template type: {value!r}") from None


def _validate_email_html(content):
    if not content:
        raise InvalidContent("Content cannot be empty")


def _validate_push_json(content):
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError) as e:
        raise InvalidContent(f"Invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise InvalidContent("Push template must be a JSON object")


CONTENT_VALIDATORS = {
    TemplateType.EMAIL_HTML: _validate_email_html,
    TemplateType.PUSH_JSON: _validate_push_json,
}


def validate_content(template_type, content):
    CONTENT_VALIDATORS[template_type](content)


def is_lock_conflict(error):
    """SQLite reports a competing writer as an OperationalError, not an IntegrityError."""
    return "locked" in str(error)


def _backend_errors(func):
    """Report an unreachable or timed out database as a transient failure."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            logger.error("Template store unavailable in %s: %s", func.__name__, e)
            raise TransientBackendFailure(f"Template store unavailable: {e}") from e

    return wrapper


class TemplateStore:
    """Repository for ``Template`` rows.

    Version allocation locks the existing rows of ``(code, language)`` with
    ``SELECT ... FOR UPDATE`` and relies on the unique constraint on
    ``(template_code, language, version)`` for the first version, where
    there is nothing to lock yet. A constraint violation means another
    create won the race; the allocation is retried with a fresh maximum.
    SQLite has no row locks; it serializes writers with the IMMEDIATE
    transaction mode and reports a busy database as a lock conflict, which
    is retried the same way.
    """

    def __init__(self, include_inactive_versions=True, max_allocation_attempts=5,
                 default_language=DEFAULT_LANGUAGE):
        self.include_inactive_versions = include_inactive_versions
        self.max_allocation_attempts = max_allocation_attempts
        self.default_language = default_language

    @_backend_errors
    def create(self, code, template_type, language, content, meta=None, created_by=None):
        template_type = parse_template_type(template_type)
        validate_content(template_type, content)
        language = language or self.default_language

        for attempt in range(1, self.max_allocation_attempts + 1):
            try:
                with transaction.atomic():
                    version = self._next_version(code, language)
                    template = Template.objects.create(
                        template_code=code,
                        version=version,
                        type=template_type.value,
                        language=language,
                        content=content,
                        meta=meta,
                        created_by=created_by,
                        is_active=True,
                    )
            except IntegrityError:
                logger.info(
                    "Version conflict for code=%s language=%s (attempt %d/%d), retrying",
                    code, language, attempt, self.max_allocation_attempts,
                )
                continue
            except OperationalError as e:
                if not is_lock_conflict(e):
                    raise
                logger.info(
                    "Store locked for code=%s language=%s (attempt %d/%d), retrying: %s",
                    code, language, attempt, self.max_allocation_attempts, e,
                )
                continue
            logger.info("Created template code=%s language=%s version=%d", code, language, version)
            return template

        raise TransientBackendFailure(
            f"Could not allocate a version for {code}/{language} after "
            f"{self.max_allocation_attempts} attempts"
        )

    def _next_version(self, code, language):
        """Highest existing version + 1, counting inactive rows. Call inside a transaction."""
        # FOR UPDATE cannot be combined with an aggregate, so lock the rows and take max here.
        versions = list(
            Template.objects.select_for_update()
            .filter(template_code=code, language=language)
            .values_list("version", flat=True)
        )
        return max(versions, default=0) + 1

    @_backend_errors
    def get(self, code, language=None, version=None):
        language = language or self.default_language
        queryset = Template.objects.filter(template_code=code, language=language, is_active=True)
        if version is not None:
            template = queryset.filter(version=version).first()
        else:
            template = queryset.order_by("-version").first()
        if template is None:
            raise TemplateNotFound(
                f"Template {code!r} (language={language}, version={version or 'latest'}) not found"
            )
        return template

    @_backend_errors
    def list_versions(self, code):
        queryset = Template.objects.filter(template_code=code)
        if not self.include_inactive_versions:
            queryset = queryset.filter(is_active=True)
        return list(queryset.order_by("-version", "language"))

    @_backend_errors
    def soft_delete(self, code, version):
        """Deactivate every language of ``(code, version)``; return the affected languages."""
        with transaction.atomic():
            rows = Template.objects.select_for_update().filter(
                template_code=code, version=version, is_active=True
            )
            languages = set(rows.values_list("language", flat=True))
            if not languages:
                raise TemplateNotFound(f"Template {code!r} version {version} not found")
            # .update() bypasses auto_now
            Template.objects.filter(
                template_code=code, version=version, is_active=True
            ).update(is_active=False, updated_at=timezone.now())
        logger.info("Soft-deleted template code=%s version=%s languages=%s", code, version, sorted(languages))
        return languages
