from django.apps import AppConfig


class TemplateRegistryConfig(AppConfig):
    name = 'template_registry'
    verbose_name = 'Template Registry'
    default_auto_field = 'django.db.models.BigAutoField'

    service = None

    def ready(self):
        from .services import build_template_service

        self.service = build_template_service()
