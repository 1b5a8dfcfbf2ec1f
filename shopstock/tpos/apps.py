from django.apps import AppConfig


class TposConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shopstock.tpos'
    verbose_name = 'TPOS integration'
