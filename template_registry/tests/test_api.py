from django.core.cache import caches
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient
from rest_framework import status
from template_registry.handlers import envelope_response
from template_registry.models import Template


class TemplateModelTests(TestCase):
    """Test Template model."""

    def test_create_template(self):
        """Test creating a basic template row."""
        template = Template.objects.create(
            template_code="welcome",
            version=1,
            type="email_html",
            language="en",
            content="Hello {{name}}, welcome to our service!"
        )
        self.assertEqual(template.template_code, "welcome")
        self.assertEqual(template.version, 1)
        self.assertTrue(template.is_active)
        self.assertEqual(str(template), "welcome (lang=en, v1)")

    def test_unique_together_code_language_version(self):
        """Test that code+language+version is unique."""
        Template.objects.create(template_code="test", version=1, type="email_html", language="en", content="a")

        # Same version in another language is fine
        Template.objects.create(template_code="test", version=1, type="email_html", language="pt", content="b")

        with self.assertRaises(Exception):  # IntegrityError
            Template.objects.create(template_code="test", version=1, type="email_html", language="en", content="c")


class APITestCase(TestCase):
    def setUp(self):
        caches["default"].clear()
        self.client = APIClient()
        self.create_url = '/api/v1/templates/'

    def create(self, **overrides):
        payload = {
            "template_code": "welcome",
            "type": "email_html",
            "language": "en",
            "content": "<p>Hello {{name}}</p>",
        }
        payload.update(overrides)
        return self.client.post(self.create_url, payload, format='json')


class TemplateCreateAPITests(APITestCase):
    """Test the create endpoint."""

    def test_create_template(self):
        response = self.create(meta={"subject": "Welcome"})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['data']['template_code'], "welcome")
        self.assertEqual(data['data']['version'], 1)
        self.assertEqual(data['data']['type'], "email_html")
        self.assertEqual(data['data']['meta'], {"subject": "Welcome"})
        self.assertTrue(data['data']['is_active'])

    def test_version_auto_increment(self):
        """Test that creating another template with same code increments version."""
        self.assertEqual(self.create().json()['data']['version'], 1)
        self.assertEqual(self.create(content="Updated {{name}}").json()['data']['version'], 2)

        # Older versions stay active and addressable
        v1 = Template.objects.get(template_code="welcome", language="en", version=1)
        self.assertTrue(v1.is_active)

    def test_create_invalid_type(self):
        response = self.create(type="sms")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        data = response.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['error'], "invalid_template_type")

    def test_create_invalid_content(self):
        """Test a push template body must be a JSON object."""
        response = self.create(type="push_json", content="[1, 2]")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], "invalid_content")

    def test_create_empty_html(self):
        response = self.create(content="")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], "invalid_content")

    def test_create_missing_fields(self):
        response = self.client.post(self.create_url, {"type": "email_html"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        data = response.json()
        self.assertEqual(data['error'], "invalid_input")
        self.assertIn('template_code', data['meta']['errors'])


class TemplateDetailAPITests(APITestCase):
    """Test fetching a template."""

    def setUp(self):
        super().setUp()
        self.create(content="v1")
        self.create(content="v2")

    def test_get_latest(self):
        response = self.client.get('/api/v1/templates/welcome/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['version'], 2)

    def test_get_version(self):
        response = self.client.get('/api/v1/templates/welcome/', {"version": 1, "language": "en"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['content'], "v1")

    def test_get_not_found(self):
        response = self.client.get('/api/v1/templates/welcome/', {"language": "fr"})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        data = response.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['error'], "template_not_found")

    def test_get_bad_version(self):
        response = self.client.get('/api/v1/templates/welcome/', {"version": "abc"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TemplateVersionListTests(APITestCase):
    """Test Template Versions API."""

    def setUp(self):
        super().setUp()
        Template.objects.create(template_code="doc", version=1, type="email_html", language="en", content="v1", is_active=False)
        Template.objects.create(template_code="doc", version=2, type="email_html", language="en", content="v2")
        Template.objects.create(template_code="doc", version=3, type="email_html", language="en", content="v3")

    def test_list_versions(self):
        """Test listing versions of a template."""
        response = self.client.get('/api/v1/templates/doc/versions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(len(data['data']), 3)
        self.assertEqual(data['meta']['total'], 3)
        # Should be ordered by -version
        self.assertEqual([t['version'] for t in data['data']], [3, 2, 1])

    def test_list_versions_not_found(self):
        """Test listing versions for non-existent code."""
        response = self.client.get('/api/v1/templates/nonexistent/versions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        # Should return empty list, not error
        self.assertEqual(len(data['data']), 0)


class RenderTemplateTests(APITestCase):
    """Test Template Rendering."""

    def setUp(self):
        super().setUp()
        self.create(content="Hello {{name}}, welcome to {{company}}!")
        self.render_url = '/api/v1/templates/welcome/render/'

    def test_render_template_success(self):
        """Test rendering a template with variables."""
        payload = {"variables": {"name": "Alice", "company": "ACME Corp"}}
        response = self.client.post(self.render_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['data']['rendered'], "Hello Alice, welcome to ACME Corp!")
        self.assertEqual(data['data']['version'], 1)

    def test_render_escapes_html(self):
        payload = {"variables": {"name": "<script>alert(1)</script>", "company": "x"}}
        response = self.client.post(self.render_url, payload, format='json')
        self.assertNotIn("<script>", response.json()['data']['rendered'])

    def test_render_template_not_found(self):
        """Test rendering non-existent template."""
        response = self.client.post('/api/v1/templates/nonexistent/render/', {"variables": {}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_render_template_with_language(self):
        """Test rendering template in specific language."""
        self.create(language="pt", content="Olá {{name}}, bem-vindo!")

        response = self.client.post(self.render_url + '?language=pt', {"variables": {"name": "Bruno"}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertIn("Olá Bruno", data['data']['rendered'])
        self.assertEqual(data['data']['language'], 'pt')

    def test_render_template_inactive(self):
        """Test that inactive templates cannot be rendered."""
        self.client.delete('/api/v1/templates/welcome/1/')

        response = self.client.post(self.render_url, {"variables": {}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_render_variables_must_be_object(self):
        response = self.client.post(self.render_url, {"variables": ["a"]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_render_push(self):
        self.create(template_code="push", type="push_json", content='{"title":"{{t}}","body":"{{b}}"}')

        response = self.client.post('/api/v1/templates/push/render/', {"variables": {"t": "Hi", "b": "Yo"}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['rendered'], {"title": "Hi", "body": "Yo"})

    def test_render_push_missing_body(self):
        self.create(template_code="push", type="push_json", content='{"title":"{{t}}"}')

        response = self.client.post('/api/v1/templates/push/render/', {"variables": {"t": "Hi"}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], "render_error")


class TemplateDeleteAPITests(APITestCase):
    """Test soft delete."""

    def test_delete_version(self):
        self.create()
        self.create(language="pt")

        response = self.client.delete('/api/v1/templates/welcome/1/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['meta']['languages'], ["en", "pt"])
        self.assertEqual(Template.objects.filter(template_code="welcome", is_active=False).count(), 2)

        response = self.client.get('/api/v1/templates/welcome/', {"version": 1})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_not_found(self):
        response = self.client.delete('/api/v1/templates/welcome/3/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class EnvelopeResponseTests(SimpleTestCase):
    """Test the response envelope helper."""

    def test_success_envelope(self):
        payload = envelope_response(data={"version": 1}, message="ok")
        self.assertEqual(
            payload,
            {"success": True, "data": {"version": 1}, "error": None, "message": "ok", "meta": {}},
        )

    def test_error_marks_failure(self):
        """Test an error code alone makes the envelope unsuccessful."""
        payload = envelope_response(message="missing", error="template_not_found")
        self.assertFalse(payload['success'])
        self.assertIsNone(payload['data'])
        self.assertEqual(payload['error'], "template_not_found")


class HealthCheckTests(TestCase):
    """Test health and readiness endpoints."""

    def setUp(self):
        self.client = APIClient()

    def test_health_check(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['service'], 'template_service')
        self.assertEqual(data['status'], 'ok')

    def test_readiness_check(self):
        """Test readiness reports database and cache state."""
        response = self.client.get('/ready/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['status'], 'ok')
        self.assertEqual(data['database'], 'ok')
        self.assertEqual(data['cache'], 'ok')
