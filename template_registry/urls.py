from django.urls import path
from . import views

urlpatterns = [
    path('api/v1/templates/', views.TemplateCreateView.as_view(), name='template-create'),
    path('api/v1/templates/<str:code>/', views.TemplateDetailView.as_view(), name='template-detail'),
    path('api/v1/templates/<str:code>/render/', views.RenderTemplateView.as_view(), name='template-render'),
    path('api/v1/templates/<str:code>/versions/', views.TemplateVersionListView.as_view(), name='template-versions'),
    path('api/v1/templates/<str:code>/<int:version>/', views.TemplateVersionDeleteView.as_view(), name='template-version-delete'),
    path('health/', views.HealthCheckView.as_view(), name='health-check'),
    path('ready/', views.ReadinessView.as_view(), name='readiness-check'),
]
