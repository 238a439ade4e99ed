"""
Django admin configuration for marketplace models.
"""

from django.contrib import admin

from marketplace.models import (
    Brand,
    Brief,
    BriefApplication,
    Content,
    ContentMetric,
    Creator,
)


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ("company_name", "user", "created_at")
    search_fields = ("company_name", "user__email")


@admin.register(Creator)
class CreatorAdmin(admin.ModelAdmin):
    list_display = ("display_name", "user", "created_at")
    search_fields = ("display_name", "user__email")


@admin.register(Brief)
class BriefAdmin(admin.ModelAdmin):
    list_display = ("title", "brand", "budget", "created_at")
    search_fields = ("title",)


@admin.register(BriefApplication)
class BriefApplicationAdmin(admin.ModelAdmin):
    list_display = ("brief", "creator", "status", "created_at")
    list_filter = ("status",)


@admin.register(Content)
class ContentAdmin(admin.ModelAdmin):
    list_display = ("title", "creator", "platform", "created_at")


@admin.register(ContentMetric)
class ContentMetricAdmin(admin.ModelAdmin):
    list_display = ("content", "date", "views", "clicks")
    list_filter = ("date",)
