from django.db import models


class TPOSCredential(models.Model):
    """Stored bearer token (and login used to refresh it) for the POS platform"""
    TOKEN_TYPE_CHOICES = [
        ('tpos', 'TPOS'),
        ('facebook', 'Facebook'),
    ]
    SECRET_FIELDS = ('bearer_token', 'password')

    name = models.CharField(max_length=200)
    token_type = models.CharField(max_length=20, choices=TOKEN_TYPE_CHOICES, default='tpos', db_index=True)
    bearer_token = models.TextField(blank=True, null=True)
    username = models.CharField(max_length=200, blank=True, null=True)
    password = models.CharField(max_length=200, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.token_type})"

    class Meta:
        db_table = 'tpos_credentials'
        ordering = ['-created_at', '-id']
