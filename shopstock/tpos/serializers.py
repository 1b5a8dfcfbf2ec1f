from rest_framework import serializers
from .models import TPOSCredential


class TPOSCredentialSerializer(serializers.ModelSerializer):
    has_token = serializers.SerializerMethodField()

    class Meta:
        model = TPOSCredential
        fields = [
            'id', 'name', 'token_type', 'bearer_token', 'username', 'password',
            'has_token', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'bearer_token': {'write_only': True},
            'password': {'write_only': True},
        }

    def get_has_token(self, obj):
        return bool(obj.bearer_token)
