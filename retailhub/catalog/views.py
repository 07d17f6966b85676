import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Case, IntegerField, Q, Value, When
from django.shortcuts import get_object_or_404
from retailhub.core.utils import create_audit_log, get_user_tenant
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer, ProductSearchSerializer, ProductVariantSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List the tenant's products or create a new product"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        queryset = Product.objects.filter(tenant=tenant).prefetch_related('variants')
        filterset = ProductFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('name')

        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)

        serializer = ProductSerializer(page_obj, many=True)
        return Response({
            'results': serializer.data,
            'count': paginator.count,
            'page': page,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        })
    else:
        serializer = ProductSerializer(data=request.data, context={'tenant': tenant, 'request': request})
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=str(product.id),
                object_name=product.name,
                object_reference=product.sku,
                changes={'name': product.name, 'sku': product.sku, 'category': product.category},
                tenant=tenant,
            )
            return Response({'product': ProductSerializer(product).data}, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or deactivate a product"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    product = get_object_or_404(Product.objects.prefetch_related('variants'), pk=pk, tenant=tenant)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(
            product, data=request.data, partial=request.method == 'PATCH',
            context={'tenant': tenant, 'request': request}
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        # Products referenced by invoices and orders are kept; deleting only hides them.
        product.is_active = False
        product.save(update_fields=['is_active', 'updated_at'])
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=str(product.id),
            object_name=product.name,
            object_reference=product.sku,
            tenant=tenant,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_search(request, query):
    """
    Product lookup for the purchase form.

    Matches name, SKU or category; names starting with the query come first.
    Returns at most 10 products.
    """
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)

    query = (query or '').strip()
    if not query:
        return Response({'products': []})

    products = (
        Product.objects.filter(tenant=tenant, is_active=True)
        .filter(Q(name__icontains=query) | Q(sku__icontains=query) | Q(category__icontains=query))
        .annotate(prefix_rank=Case(
            When(name__istartswith=query, then=Value(0)),
            default=Value(1),
            output_field=IntegerField(),
        ))
        .prefetch_related('variants')
        .order_by('prefix_rank', 'name')[:10]
    )
    return Response({'products': ProductSearchSerializer(products, many=True).data})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_variants(request, pk):
    """List or create variants of a product"""
    tenant = get_user_tenant(request.user)
    if not tenant:
        return Response({'error': 'Tenant not found'}, status=status.HTTP_404_NOT_FOUND)
    product = get_object_or_404(Product, pk=pk, tenant=tenant)

    if request.method == 'GET':
        variants = product.variants.filter(is_active=True)
        return Response({'variants': ProductVariantSerializer(variants, many=True).data})

    serializer = ProductVariantSerializer(data=request.data, context={'product': product, 'request': request})
    if serializer.is_valid():
        variant = serializer.save()
        logger.info(f"Created variant {variant.sku} for product {product.id}")
        return Response({'variant': ProductVariantSerializer(variant).data}, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
