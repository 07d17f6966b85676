from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'retailhub.accounting'
    label = 'accounting'

    def ready(self):
        import retailhub.accounting.signals  # noqa: F401
