from django.db import models
import uuid


class TemplateType(models.TextChoices):
    EMAIL_HTML = "email_html", "Email HTML"
    PUSH_JSON = "push_json", "Push JSON"


class Template(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    template_code = models.CharField(max_length=100)  # not unique (multiple versions + languages)
    version = models.PositiveIntegerField()
    type = models.CharField(max_length=20, choices=TemplateType.choices)
    language = models.CharField(max_length=10, default='en')
    content = models.TextField()
    created_by = models.UUIDField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    is_active = models.BooleanField(default=True)
    meta = models.JSONField(blank=True, null=True)

    class Meta:
        db_table = 'templates'
        ordering = ['-version', 'language']
        constraints = [
            # Version allocation relies on this to reject a duplicate version
            models.UniqueConstraint(
                fields=['template_code', 'language', 'version'],
                name='template_code_language_version_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(version__gte=1),
                name='template_version_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['template_code', 'language', 'is_active'], name='templates_lookup_idx'),
        ]

    def __str__(self):
        return f"{self.template_code} (lang={self.language}, v{self.version})"

    @property
    def template_type(self):
        return TemplateType(self.type)
