from django.urls import re_path

from .views import (
    CheckCircularityAPIView,
    CheckDependenciesAPIView,
    TaskDependenciesAPIView,
    TaskDependencyDetailAPIView,
)

# trailing slash optional, the dashboard calls these without one
urlpatterns = [
    re_path(r"^check-dependencies/?$", CheckCircularityAPIView.as_view()),
    re_path(r"^(?P<task_id>[^/]+)/check-dependencies/?$", CheckDependenciesAPIView.as_view()),
    re_path(r"^(?P<task_id>[0-9]+)/dependencies/?$", TaskDependenciesAPIView.as_view()),
    re_path(r"^(?P<task_id>[0-9]+)/dependencies/(?P<dependency_id>[^/]+)/?$", TaskDependencyDetailAPIView.as_view()),
]
