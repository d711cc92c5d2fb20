from django.contrib import admin
from campaigns.models import Campaign, RewardTier


class RewardTierInline(admin.TabularInline):
    model = RewardTier
    extra = 0
    readonly_fields = ['claimed_count']


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ['title', 'creator', 'goal_amount', 'current_amount', 'supporters_count', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['title', 'creator__username']
    readonly_fields = ['current_amount', 'supporters_count', 'created_at', 'updated_at']
    inlines = [RewardTierInline]
