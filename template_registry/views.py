from django.apps import apps
from django.db import DatabaseError, connection
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from .handlers import envelope_response
from .serializers import (
    CreateTemplateSerializer,
    RenderRequestSerializer,
    TemplateLookupSerializer,
    TemplateSerializer,
)

logger = logging.getLogger(__name__)


class TemplateServiceMixin:
    """Resolve the process-scoped service built when the app became ready."""

    def get_service(self):
        return apps.get_app_config("template_registry").service

    def get_lookup(self, request):
        serializer = TemplateLookupSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class TemplateCreateView(TemplateServiceMixin, APIView):
    def post(self, request, *args, **kwargs):
        serializer = CreateTemplateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        template = self.get_service().create(
            data["template_code"],
            data["type"],
            data["language"],
            data["content"],
            meta=data["meta"],
        )
        return Response(
            envelope_response(data=TemplateSerializer(template).data, message="Template created successfully"),
            status=status.HTTP_201_CREATED,
        )


class TemplateDetailView(TemplateServiceMixin, APIView):
    def get(self, request, code, *args, **kwargs):
        lookup = self.get_lookup(request)
        template = self.get_service().get(code, language=lookup.get("language"), version=lookup.get("version"))
        return Response(
            envelope_response(data=TemplateSerializer(template).data, message="Template retrieved successfully"),
            status=status.HTTP_200_OK,
        )


class TemplateVersionDeleteView(TemplateServiceMixin, APIView):
    def delete(self, request, code, version, *args, **kwargs):
        languages = self.get_service().soft_delete(code, version)
        return Response(
            envelope_response(
                data=None,
                message="Template deleted successfully",
                meta={"languages": sorted(languages)},
            ),
            status=status.HTTP_200_OK,
        )


class TemplateVersionListView(TemplateServiceMixin, APIView):
    def get(self, request, code, *args, **kwargs):
        templates = self.get_service().list_versions(code)
        return Response(
            envelope_response(
                data=TemplateSerializer(templates, many=True).data,
                message="Template versions retrieved successfully",
                meta={"total": len(templates)},
            ),
            status=status.HTTP_200_OK,
        )


class RenderTemplateView(TemplateServiceMixin, APIView):
    def post(self, request, code, *args, **kwargs):
        lookup = self.get_lookup(request)
        serializer = RenderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        template, rendered = self.get_service().render(
            code,
            serializer.validated_data["variables"],
            language=lookup.get("language"),
            version=lookup.get("version"),
        )

        data = {
            "template_code": template.template_code,
            "version": template.version,
            "language": template.language,
            "rendered": rendered["rendered"],
        }
        return Response(
            envelope_response(data=data, message="Template rendered successfully"),
            status=status.HTTP_200_OK,
        )


class HealthCheckView(APIView):
    authentication_classes = []
    permission_classes = []

    def get(self, request, *args, **kwargs):
        return Response({"service": "template_service", "status": "ok"}, status=status.HTTP_200_OK)


class ReadinessView(TemplateServiceMixin, APIView):
    authentication_classes = []
    permission_classes = []

    def get(self, request, *args, **kwargs):
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1;")
                cursor.fetchone()
            db_status = "ok"
        except DatabaseError as e:
            logger.error(f"Readiness check DB error: {str(e)}")
            db_status = "error"

        # A cache outage only degrades latency, so it never fails readiness
        cache_status = "ok" if self.get_service().template_cache.cache.ping() else "degraded"

        is_ready = db_status == "ok"
        health_status = {
            "service": "template_service",
            "status": ("ok" if cache_status == "ok" else "degraded") if is_ready else "error",
            "database": db_status,
            "cache": cache_status,
        }

        http_status = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
        return Response(health_status, status=http_status)
