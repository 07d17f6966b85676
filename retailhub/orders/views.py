import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from retailhub.accounting.services import get_payment_account
from retailhub.core.cache_utils import tenant_cached, ORDER_STATS_CACHE_TTL
from retailhub.core.permissions import IsAdminRole, IsBusinessOwner, IsStockKeeperOrOwner
from retailhub.core.utils import create_audit_log, get_user_tenant, has_role
from .models import Order
from .serializers import OrderSerializer, OrderCreateSerializer, OrderStatusSerializer, VerifyPaymentSerializer
from .services import (
    InsufficientStock, OrderTransitionError, confirm_order, dispatch_order, set_order_status,
    verify_order_payment,
)

logger = logging.getLogger(__name__)


def _get_order(request, pk):
    """Order of the user's tenant; administrators can reach every tenant"""
    queryset = Order.objects.select_related('tenant', 'customer', 'payment_account').prefetch_related(
        'items__product', 'items__variant'
    )
    if not has_role(request.user, ('ADMIN',)):
        queryset = queryset.filter(tenant=get_user_tenant(request.user))
    return get_object_or_404(queryset, pk=pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List the tenant's orders or place a new one"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        orders = Order.objects.filter(tenant=tenant).prefetch_related('items__product', 'items__variant')
        status_filter = request.query_params.get('status', None)
        if status_filter:
            orders = orders.filter(status=status_filter)
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 20))
        paginator = Paginator(orders.order_by('-created_at', '-id'), limit)
        page_obj = paginator.get_page(page)
        return Response({
            'results': OrderSerializer(page_obj, many=True).data,
            'count': paginator.count,
            'page': page_obj.number,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        })

    serializer = OrderCreateSerializer(data=request.data, context={'tenant': tenant})
    if serializer.is_valid():
        order = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Order',
            object_id=str(order.id),
            object_name=order.customer_name,
            object_reference=order.order_number,
            changes={'total_amount': str(order.total_amount), 'items': order.items.count()},
            tenant=tenant,
        )
        return Response({'message': 'Order created successfully', 'order': OrderSerializer(order).data},
                        status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    order = _get_order(request, pk)
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def order_confirm(request, pk):
    order = _get_order(request, pk)
    try:
        confirm_order(order, request.user, request=request)
    except OrderTransitionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'message': 'Order confirmed successfully', 'order': OrderSerializer(order).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStockKeeperOrOwner])
def order_dispatch(request, pk):
    order = _get_order(request, pk)
    try:
        dispatch_order(order, request.user, request=request)
    except (OrderTransitionError, InsufficientStock) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'message': 'Order dispatched successfully', 'order': OrderSerializer(order).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def order_verify_payment(request, pk):
    """Record the customer's payment for an order into a cash or bank account"""
    order = _get_order(request, pk)
    serializer = VerifyPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    account_id = serializer.validated_data.get('payment_account') or order.payment_account_id
    account = get_payment_account(order.tenant, account_id)
    if account is None:
        return Response({'payment_account': ['Select a cash or bank account']}, status=status.HTTP_400_BAD_REQUEST)
    amount = serializer.validated_data.get('amount') or order.payment_amount or order.total_amount
    try:
        payment = verify_order_payment(order, request.user, account, amount, request=request)
    except OrderTransitionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({
        'message': 'Payment verified successfully',
        'order': OrderSerializer(order).data,
        'payment_number': payment.payment_number,
    })


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def order_status_update(request, pk):
    order = _get_order(request, pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        set_order_status(order, serializer.validated_data['status'], request.user, request=request)
    except InsufficientStock as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'message': 'Order status updated successfully', 'order': OrderSerializer(order).data})


@tenant_cached(cache_ttl=ORDER_STATS_CACHE_TTL, key_prefix='order_stats')
def get_order_stats(tenant):
    orders = Order.objects.filter(tenant=tenant)
    by_status = {code: 0 for code, _ in Order.STATUS_CHOICES}
    for row in orders.values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']
    revenue = orders.exclude(status__in=['PENDING', 'CANCELLED']).aggregate(total=Sum('total_amount'))['total']
    return {
        'total_orders': sum(by_status.values()),
        'by_status': by_status,
        'pending_orders': by_status['PENDING'],
        'confirmed_orders': by_status['CONFIRMED'],
        'dispatched_orders': by_status['DISPATCHED'],
        'total_revenue': revenue or 0,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_stats(request):
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(get_order_stats(tenant))
