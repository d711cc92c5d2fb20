from django.urls import path
from payments import views

app_name = 'payments'

urlpatterns = [
    # Checkout
    path('create/', views.create_payment_order, name='create_order'),
    path('verify/', views.verify_payment, name='verify'),

    # Recurring support
    path('subscription/', views.create_subscription, name='create_subscription'),

    # Webhooks
    path('webhooks/razorpay/', views.razorpay_webhook, name='razorpay_webhook'),
]
