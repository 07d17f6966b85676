from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from retailhub.accounting.balances import calculate_supplier_balance, calculate_customer_balance
from retailhub.core.permissions import IsBusinessOwner
from retailhub.core.utils import create_audit_log, get_user_tenant
from .models import Supplier, Customer
from .serializers import SupplierSerializer, SupplierSearchSerializer, CustomerSerializer


def _balance_response(supplier):
    balance = calculate_supplier_balance(supplier)
    return Response({
        'supplier': {'id': supplier.id, 'name': supplier.name},
        'balance': balance,
        'available_advance': balance['available_advance'],
    })


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def supplier_list_create(request):
    """List the tenant's suppliers or create a new supplier"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        suppliers = Supplier.objects.filter(tenant=tenant)
        search = request.query_params.get('search', None)
        if search:
            suppliers = suppliers.filter(
                Q(name__icontains=search) | Q(contact__icontains=search) | Q(phone__icontains=search)
            )
        return Response(SupplierSerializer(suppliers.order_by('name'), many=True).data)
    else:
        serializer = SupplierSerializer(data=request.data, context={'tenant': tenant})
        if serializer.is_valid():
            supplier = serializer.save(tenant=tenant)
            create_audit_log(
                request=request,
                action='create',
                model_name='Supplier',
                object_id=str(supplier.id),
                object_name=supplier.name,
                changes={'opening_balance': str(supplier.opening_balance)},
                tenant=tenant,
            )
            return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    supplier = get_object_or_404(Supplier, pk=pk, tenant=tenant)

    if request.method == 'GET':
        return Response(SupplierSerializer(supplier).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH',
                                        context={'tenant': tenant})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        if supplier.purchase_invoices.filter(is_deleted=False).exists():
            return Response(
                {'error': 'Supplier has purchase invoices and cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Supplier',
            object_id=str(supplier.id),
            object_name=supplier.name,
            tenant=tenant,
        )
        supplier.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def supplier_search(request, query):
    """Supplier lookup by name, contact, email or phone (max 10)"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    suppliers = Supplier.objects.filter(tenant=tenant).filter(
        Q(name__icontains=query) | Q(contact__icontains=query) | Q(email__icontains=query) | Q(phone__icontains=query)
    ).order_by('name')[:10]
    return Response({'suppliers': SupplierSearchSerializer(suppliers, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def supplier_balance(request, pk):
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    supplier = get_object_or_404(Supplier, pk=pk, tenant=tenant)
    return _balance_response(supplier)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBusinessOwner])
def supplier_balance_by_name(request, name):
    """Balance lookup used while entering a purchase invoice"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    supplier = Supplier.objects.filter(tenant=tenant, name__iexact=name.strip()).first()
    if supplier is None:
        return Response({'error': 'Supplier not found'}, status=status.HTTP_404_NOT_FOUND)
    return _balance_response(supplier)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List the tenant's customers or create a new customer"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        customers = Customer.objects.filter(tenant=tenant)
        search = request.query_params.get('search', None)
        if search:
            customers = customers.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        return Response(CustomerSerializer(customers.order_by('name'), many=True).data)
    else:
        serializer = CustomerSerializer(data=request.data, context={'tenant': tenant})
        if serializer.is_valid():
            customer = serializer.save(tenant=tenant)
            return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve or update a customer; GET includes the customer's balance"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    customer = get_object_or_404(Customer, pk=pk, tenant=tenant)

    if request.method == 'GET':
        data = CustomerSerializer(customer).data
        data['balance'] = calculate_customer_balance(customer)
        return Response(data)
    serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH',
                                    context={'tenant': tenant})
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
