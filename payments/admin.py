from django.contrib import admin, messages
from payments.models import Payment, Subscription, WebhookEvent
from payments.services import Outcome, mark_payment_refunded


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'recipient_username', 'supporter_name', 'amount', 'kind', 'status', 'settled', 'created_at']
    list_filter = ['status', 'kind', 'settled']
    search_fields = ['order_id', 'payment_id', 'recipient_username', 'supporter_name', 'supporter_email']
    readonly_fields = ['id', 'order_id', 'payment_id', 'settled', 'settled_at', 'created_at', 'updated_at']
    actions = ['mark_refunded']

    @admin.action(description='Mark selected payments as refunded')
    def mark_refunded(self, request, queryset):
        refunded = 0
        for order_id in queryset.values_list('order_id', flat=True):
            if mark_payment_refunded(order_id) == Outcome.APPLIED:
                refunded += 1
        self.message_user(request, f'{refunded} payment(s) marked refunded.', messages.SUCCESS)


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ['gateway_subscription_id', 'subscriber', 'creator', 'amount', 'frequency', 'status', 'next_billing_date']
    list_filter = ['status', 'frequency']
    search_fields = ['gateway_subscription_id', 'subscriber__username', 'creator__username']
    readonly_fields = ['id', 'gateway_subscription_id', 'gateway_plan_id', 'created_at', 'updated_at']


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ['event_id', 'event', 'status', 'outcome', 'attempts', 'created_at', 'processed_at']
    list_filter = ['status', 'event']
    search_fields = ['event_id']
    readonly_fields = ['event_id', 'event', 'payload', 'outcome', 'error_message', 'attempts', 'created_at', 'processed_at']
