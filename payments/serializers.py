"""
Payment Serializers
"""

from django.conf import settings
from rest_framework import serializers

from payments.models import Payment, Subscription


def _validate_minimum(value):
    if value < settings.MIN_PAYMENT_AMOUNT:
        raise serializers.ValidationError(f'Minimum amount is ₹{settings.MIN_PAYMENT_AMOUNT}')
    return value


class CreateOrderSerializer(serializers.Serializer):
    campaign_id = serializers.IntegerField()
    amount = serializers.IntegerField(help_text='Amount in rupees')
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField(required=False, allow_blank=True)
    message = serializers.CharField(max_length=500, required=False, allow_blank=True)
    reward_tier_id = serializers.IntegerField(required=False, allow_null=True)
    anonymous = serializers.BooleanField(required=False, default=False)

    def validate_amount(self, value):
        return _validate_minimum(value)


class VerifyPaymentSerializer(serializers.Serializer):
    razorpay_order_id = serializers.CharField()
    razorpay_payment_id = serializers.CharField()
    razorpay_signature = serializers.CharField()


class CreateSubscriptionSerializer(serializers.Serializer):
    campaign_id = serializers.IntegerField()
    amount = serializers.IntegerField(help_text='Amount per charge in rupees')
    frequency = serializers.ChoiceField(choices=[c[0] for c in Subscription.FREQUENCY_CHOICES], default='monthly')

    def validate_amount(self, value):
        return _validate_minimum(value)


class SubscriptionActionSerializer(serializers.Serializer):
    subscription_id = serializers.UUIDField()


class UpdateSubscriptionSerializer(SubscriptionActionSerializer):
    amount = serializers.IntegerField(help_text='New amount per charge in rupees')

    def validate_amount(self, value):
        return _validate_minimum(value)


class PaymentSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'order_id', 'payment_id', 'amount', 'currency', 'status', 'settled']


class SubscriptionSerializer(serializers.ModelSerializer):
    creator_username = serializers.CharField(source='creator.username', read_only=True)
    campaign_title = serializers.SerializerMethodField()

    class Meta:
        model = Subscription
        fields = ['id', 'gateway_subscription_id', 'creator_username', 'campaign_title', 'amount',
                  'frequency', 'status', 'start_date', 'end_date', 'next_billing_date', 'created_at']

    def get_campaign_title(self, obj):
        return obj.campaign.title if obj.campaign else None
