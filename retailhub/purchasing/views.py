import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404
from retailhub.accounting.balances import supplier_available_advance
from retailhub.core.permissions import IsBusinessOwner
from retailhub.core.utils import create_audit_log, get_user_tenant
from .filters import PurchaseInvoiceFilter
from .models import PurchaseInvoice
from .serializers import (
    PurchaseInvoiceSerializer, PurchaseInvoiceDetailSerializer, PurchaseInvoiceCreateSerializer,
    PurchaseInvoiceUpdateSerializer, PurchaseItemSerializer,
)
from .services import (
    create_purchase_invoice, find_supplier, get_cash_clear_epsilon, restore_invoice, soft_delete_invoice,
    state_from_payload,
)
from .settlement import compute_settlement

logger = logging.getLogger(__name__)


def _invoice_queryset(tenant):
    return PurchaseInvoice.objects.filter(tenant=tenant).select_related('supplier').prefetch_related(
        'items', 'returns__items', 'returns__refund_account', 'payments__account'
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def purchase_invoice_create_with_products(request):
    """Create a purchase invoice with its purchased lines, returns and payment"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    serializer = PurchaseInvoiceCreateSerializer(data=request.data, context={'tenant': tenant, 'request': request})
    if not serializer.is_valid():
        logger.info(f"Rejected purchase invoice for tenant {tenant.id}: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    products, variants = data['catalog']
    invoice = create_purchase_invoice(
        tenant,
        request.user,
        header={
            'invoice_number': data.get('invoice_number'),
            'supplier_name': data['supplier_name'],
            'invoice_date': data['invoice_date'],
            'notes': data.get('notes'),
        },
        settlement=data['settlement'],
        products=products,
        variants=variants,
        payment_account=data['payment_account_obj'],
        refund_account=data['refund_account_obj'],
        request=request,
    )
    invoice = _invoice_queryset(tenant).get(pk=invoice.pk)
    return Response({
        'message': 'Purchase invoice created successfully',
        'invoice': PurchaseInvoiceDetailSerializer(invoice).data,
        'items': PurchaseItemSerializer(invoice.items.all(), many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def purchase_invoice_list(request):
    """List purchase invoices of the tenant"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    queryset = PurchaseInvoice.objects.filter(tenant=tenant).prefetch_related('items')
    if request.query_params.get('include_deleted') not in ('true', '1'):
        queryset = queryset.filter(is_deleted=False)

    filterset = PurchaseInvoiceFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('-invoice_date', '-id')

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 10))
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    paginator = Paginator(queryset, max(limit, 1))
    page_obj = paginator.get_page(page)

    serializer = PurchaseInvoiceSerializer(page_obj, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def purchase_invoice_detail(request, pk):
    """Retrieve, update the header of, or soft delete a purchase invoice"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        invoice = get_object_or_404(_invoice_queryset(tenant), pk=pk)
        return Response(PurchaseInvoiceDetailSerializer(invoice).data)

    invoice = get_object_or_404(PurchaseInvoice, pk=pk, tenant=tenant, is_deleted=False)
    if request.method == 'PUT':
        before = {'invoice_number': invoice.invoice_number, 'invoice_date': str(invoice.invoice_date), 'notes': invoice.notes}
        serializer = PurchaseInvoiceUpdateSerializer(invoice, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        invoice = serializer.save()
        after = {'invoice_number': invoice.invoice_number, 'invoice_date': str(invoice.invoice_date), 'notes': invoice.notes}
        create_audit_log(
            request=request,
            action='update',
            model_name='PurchaseInvoice',
            object_id=str(invoice.id),
            object_name=invoice.invoice_number,
            object_reference=invoice.invoice_number,
            changes={key: {'old': before[key], 'new': after[key]} for key in before if before[key] != after[key]},
            tenant=tenant,
        )
        invoice = _invoice_queryset(tenant).get(pk=invoice.pk)
        return Response({'message': 'Purchase invoice updated successfully', 'invoice': PurchaseInvoiceDetailSerializer(invoice).data})

    soft_delete_invoice(invoice, user=request.user, request=request)
    return Response({'message': 'Purchase invoice deleted successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def purchase_invoice_restore(request, pk):
    """Restore a soft deleted purchase invoice"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    invoice = get_object_or_404(PurchaseInvoice, pk=pk, tenant=tenant, is_deleted=True)
    if PurchaseInvoice.objects.filter(
        tenant=tenant, invoice_number=invoice.invoice_number, is_deleted=False
    ).exists():
        return Response(
            {'error': f'Invoice number {invoice.invoice_number} is already used by another invoice'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    restore_invoice(invoice, user=request.user, request=request)
    invoice = _invoice_queryset(tenant).get(pk=invoice.pk)
    return Response({'message': 'Purchase invoice restored successfully', 'invoice': PurchaseInvoiceDetailSerializer(invoice).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def purchase_invoice_settlement_preview(request):
    """Run the settlement for a draft invoice without saving anything"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    supplier = find_supplier(tenant, request.data.get('supplier_name'))
    available_advance = supplier_available_advance(supplier)
    result = compute_settlement(state_from_payload(request.data, available_advance), get_cash_clear_epsilon())
    totals = result.totals
    return Response({
        'purchase_total': str(totals.purchase_total),
        'return_total': str(totals.return_total),
        'net_total': str(totals.net_total),
        'amount_due': str(totals.amount_due),
        'available_advance': str(available_advance),
        'advance_used': str(result.advance_used),
        'cash_payment': str(result.cash_payment),
        'cash_cleared': result.cash_cleared,
        'payment_status': result.status,
        'is_valid': result.is_valid,
        'errors': list(result.errors),
    })
