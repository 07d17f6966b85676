"""
Cache invalidation signals
Invalidate a tenant's cached aggregates when its trading data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
from .cache_utils import invalidate_tenant_cache

logger = logging.getLogger(__name__)

TENANT_SCOPED_MODELS = {
    'parties.Supplier',
    'parties.Customer',
    'purchasing.PurchaseInvoice',
    'accounting.Payment',
    'accounting.Account',
    'orders.Order',
}


@receiver(post_save)
@receiver(post_delete)
def invalidate_on_change(sender, instance, **kwargs):
    label = sender._meta.label
    if label == 'core.Tenant':
        # Ids can be reused after a delete; never serve another tenant's aggregates
        invalidate_tenant_cache(instance.pk)
    elif label in TENANT_SCOPED_MODELS and instance.tenant_id:
        invalidate_tenant_cache(instance.tenant_id)
