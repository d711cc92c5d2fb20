from django.urls import path
from payments import views

app_name = 'subscriptions'

urlpatterns = [
    path('', views.list_subscriptions, name='list'),
    path('cancel/', views.cancel_subscription, name='cancel'),
    path('pause/', views.pause_subscription, name='pause'),
    path('update/', views.update_subscription, name='update'),
]
