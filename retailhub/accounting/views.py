import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from retailhub.core.permissions import IsBusinessOwner
from retailhub.core.utils import create_audit_log, get_user_tenant
from .balances import get_balance_summary, get_customer_balances, get_supplier_balances
from .models import Account, Payment
from .serializers import AccountSerializer, PaymentSerializer, PaymentCreateSerializer
from .services import ensure_default_accounts, get_payment_accounts, record_payment

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def account_list_create(request):
    """List the chart of accounts (seeding the defaults) or add an account"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        ensure_default_accounts(tenant)
        accounts = Account.objects.filter(tenant=tenant)
        account_type = request.query_params.get('type', None)
        if account_type:
            accounts = accounts.filter(type=account_type)
        return Response({'accounts': AccountSerializer(accounts, many=True).data})

    serializer = AccountSerializer(data=request.data, context={'tenant': tenant})
    if serializer.is_valid():
        account = serializer.save(tenant=tenant)
        return Response({'account': AccountSerializer(account).data}, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_account_list(request):
    """Cash and bank accounts that can take a payment (?sub_type=CASH|BANK)"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    sub_type = request.query_params.get('sub_type', None)
    if sub_type and sub_type not in ('CASH', 'BANK'):
        return Response({'error': 'sub_type must be CASH or BANK'}, status=status.HTTP_400_BAD_REQUEST)
    ensure_default_accounts(tenant)
    accounts = get_payment_accounts(tenant, sub_type)
    return Response({'accounts': AccountSerializer(accounts, many=True).data})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def payment_list_create(request):
    """List payments or record a standalone supplier/customer payment"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        payments = Payment.objects.filter(tenant=tenant).select_related(
            'account', 'supplier', 'customer', 'purchase_invoice', 'order'
        )
        payment_type = request.query_params.get('type', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)
        supplier = request.query_params.get('supplier', None)
        if payment_type:
            payments = payments.filter(type=payment_type)
        if date_from:
            payments = payments.filter(date__gte=date_from)
        if date_to:
            payments = payments.filter(date__lte=date_to)
        if supplier:
            payments = payments.filter(supplier_id=supplier)

        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 20))
        paginator = Paginator(payments.order_by('-date', '-id'), limit)
        page_obj = paginator.get_page(page)
        return Response({
            'results': PaymentSerializer(page_obj, many=True).data,
            'count': paginator.count,
            'page': page_obj.number,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        })

    serializer = PaymentCreateSerializer(data=request.data, context={'tenant': tenant})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    # A supplier payment above what is owed becomes advance for later invoices
    payment = record_payment(
        tenant, data['type'], data['amount'], data['account'],
        supplier=data['supplier'], customer=data['customer'], date=data.get('date'),
        payment_method=data.get('payment_method'), notes=data.get('notes'), user=request.user,
    )
    party = payment.supplier or payment.customer
    create_audit_log(
        request=request,
        action='payment_add',
        model_name='Payment',
        object_id=str(payment.id),
        object_name=party.name,
        object_reference=payment.payment_number,
        changes={'type': payment.type, 'amount': str(payment.amount), 'account': payment.account.name},
        tenant=tenant,
    )
    logger.info(f"Recorded {payment.type} {payment.payment_number} of {payment.amount} for tenant {tenant.id}")
    return Response({'payment': PaymentSerializer(payment).data}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def supplier_balances(request):
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'balances': get_supplier_balances(tenant)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def customer_balances(request):
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'balances': get_customer_balances(tenant)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def balance_summary(request):
    """Receivables, payables and cash position of the tenant"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(get_balance_summary(tenant))
