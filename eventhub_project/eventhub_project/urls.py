from django.contrib import admin
from django.urls import path


urlpatterns = [
    # DJANGO ADMIN (STAFF / ORGANIZERS)
    path("admin/", admin.site.urls),
]
