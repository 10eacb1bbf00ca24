"""
Root URLconf: the admin site plus the scheduling and invoicing APIs under /api/.
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('scheduling.urls')),
    path('api/', include('invoicing.urls')),
]
