"""Typed failures raised by the template registry core.

Each error carries the ``error_code`` and HTTP ``status_code`` used by the
envelope exception handler, so views never translate errors by hand.
"""


class TemplateServiceError(Exception):
    status_code = 500
    error_code = "internal_error"
    default_message = "Internal error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class TemplateNotFound(TemplateServiceError):
    status_code = 404
    error_code = "template_not_found"
    default_message = "Template not found"


class InvalidInput(TemplateServiceError):
    status_code = 400
    error_code = "invalid_input"
    default_message = "Invalid input"


class InvalidTemplateType(InvalidInput):
    error_code = "invalid_template_type"
    default_message = "Invalid template type"


class InvalidContent(InvalidInput):
    error_code = "invalid_content"
    default_message = "Invalid content"


class InvalidVariables(InvalidInput):
    error_code = "invalid_variables"
    default_message = "Invalid variables"


class RenderFailure(TemplateServiceError):
    status_code = 400
    error_code = "render_error"
    default_message = "Template render error"


class RenderedSizeExceeded(TemplateServiceError):
    status_code = 400
    error_code = "rendered_size_exceeded"
    default_message = "Rendered size exceeded limit"


class TransientBackendFailure(TemplateServiceError):
    status_code = 503
    error_code = "backend_unavailable"
    default_message = "Backend temporarily unavailable"
