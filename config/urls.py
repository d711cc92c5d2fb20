from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

from payments.views import razorpay_webhook


def health_check(request):
    return JsonResponse({'status': 'ok', 'service': 'get-me-a-chai'})


urlpatterns = [
    path('admin/', admin.site.urls),

    # Health check
    path('health/', health_check, name='health'),

    # Razorpay webhook receiver (also mounted under /api/payments/webhooks/razorpay/)
    path('webhook', razorpay_webhook, name='webhook'),

    # API
    path('api/payments/', include('payments.urls')),
    path('api/subscriptions/', include('payments.subscription_urls')),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
    path('api/docs/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
