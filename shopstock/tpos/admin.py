from django.contrib import admin
from .models import TPOSCredential


@admin.register(TPOSCredential)
class TPOSCredentialAdmin(admin.ModelAdmin):
    list_display = ['name', 'token_type', 'username', 'created_at', 'updated_at']
    list_filter = ['token_type']
    search_fields = ['name', 'username']
