from rest_framework import serializers
from .models import Template


class TemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Template
        fields = (
            'id', 'template_code', 'version', 'type', 'language', 'content',
            'created_by', 'created_at', 'updated_at', 'is_active', 'meta',
        )
        read_only_fields = fields


class CreateTemplateSerializer(serializers.Serializer):
    """Validate the create payload; versioning is managed server-side."""
    template_code = serializers.CharField(max_length=100)
    # Unknown types are rejected by the store with a typed error
    type = serializers.CharField(max_length=20)
    language = serializers.CharField(max_length=10, required=False, default='en')
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    meta = serializers.JSONField(required=False, allow_null=True, default=None)

    def validate_meta(self, value):
        if value is not None and not isinstance(value, dict):
            raise serializers.ValidationError("meta must be a JSON object.")
        return value


class RenderRequestSerializer(serializers.Serializer):
    variables = serializers.JSONField(required=False, default=dict)

    def validate_variables(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("variables must be a JSON object.")
        return value


class TemplateLookupSerializer(serializers.Serializer):
    """Query parameters shared by get and render."""
    language = serializers.CharField(max_length=10, required=False)
    version = serializers.IntegerField(min_value=1, required=False)
