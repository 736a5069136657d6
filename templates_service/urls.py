from django.urls import include, path

urlpatterns = [
    path('', include('template_registry.urls')),
]
