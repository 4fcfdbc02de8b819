from django.urls import path

from . import views

app_name = 'operations'

urlpatterns = [
    path('sanitation-report/<str:share_token>/', views.sanitation_report, name='sanitation_report'),
    path('statements/<int:pk>/<str:period>/', views.download_statement, name='download_statement'),
]
