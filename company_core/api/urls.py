# api/urls.py
from django.urls import path, include
from rest_framework.authtoken.views import obtain_auth_token
from rest_framework.routers import DefaultRouter
from .views import (
    ClientViewSet,
    ComplianceReportViewSet,
    DeliveryViewSet,
    InvoiceViewSet,
    NotificationViewSet,
    RefillRequestViewSet,
    SanitationVisitViewSet,
    TopUpRequestViewSet,
    WaterStationViewSet,
    me,
    upload_file,
)

router = DefaultRouter()
router.register(r'clients', ClientViewSet)
router.register(r'deliveries', DeliveryViewSet)
router.register(r'invoices', InvoiceViewSet)
router.register(r'sanitation-visits', SanitationVisitViewSet)
router.register(r'stations', WaterStationViewSet)
router.register(r'compliance-reports', ComplianceReportViewSet)
router.register(r'top-up-requests', TopUpRequestViewSet)
router.register(r'refill-requests', RefillRequestViewSet)
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    path('auth/token/', obtain_auth_token, name='api_token_auth'),
    path('me/', me, name='api_me'),
    path('uploads/', upload_file, name='api_upload'),
    path('', include(router.urls)),
]
