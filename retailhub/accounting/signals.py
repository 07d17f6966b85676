from django.db.models.signals import post_save
from django.dispatch import receiver
from .services import ensure_default_accounts


@receiver(post_save, sender='core.Tenant')
def seed_tenant_accounts(sender, instance, created, **kwargs):
    """New tenants start with the default chart of accounts"""
    if created and not kwargs.get('raw'):
        ensure_default_accounts(instance)
