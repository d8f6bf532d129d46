import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.http import HttpResponse
from django.utils import timezone

from backoffice.core.pagination import paginated_response
from backoffice.core.tenancy import get_current_membership, get_scoped_object_or_404
from backoffice.core.utils import create_audit_log
from .filters import SupplierFilter
from .models import Supplier, SupplierImport
from .serializers import SupplierSerializer, SupplierImportSerializer, SupplierImportRequestSerializer
from . import import_service

logger = logging.getLogger(__name__)

MODE = 'suppliers'


def _read_upload(data):
    """CSV text and file name from either an uploaded file or inline content"""
    upload = data.get('file')
    if upload is not None:
        raw = upload.read()
        try:
            content = raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            content = raw.decode('cp1251')
        return content, data.get('file_name') or upload.name
    return data.get('content', ''), data.get('file_name') or 'import.csv'


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def supplier_list_create(request):
    """List suppliers with search and pagination, or create a supplier"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Supplier.objects.filter(organization=organization, deleted_at__isnull=True)
        queryset = SupplierFilter(request.query_params, queryset=queryset).qs
        return paginated_response(request, queryset, SupplierSerializer, context)

    serializer = SupplierSerializer(data=request.data, context=context)
    if serializer.is_valid():
        supplier = serializer.save(organization=organization, created_by=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='Supplier',
            object_id=supplier.id,
            object_name=supplier.name,
            organization=organization,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def supplier_detail(request, pk):
    """Retrieve, update or soft delete a supplier"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    supplier = get_scoped_object_or_404(Supplier, organization, pk=pk, deleted_at__isnull=True)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(SupplierSerializer(supplier, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Supplier',
                object_id=supplier.id,
                object_name=supplier.name,
                organization=organization,
                changes=serializer.validated_data,
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        supplier.deleted_at = timezone.now()
        supplier.save(update_fields=['deleted_at', 'updated_at'])
        create_audit_log(
            request=request,
            action='delete',
            model_name='Supplier',
            object_id=pk,
            object_name=supplier.name,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_categories(request):
    """Distinct categories in use"""
    membership = get_current_membership(request, mode=MODE)
    categories = (
        Supplier.objects.filter(organization=membership.organization, deleted_at__isnull=True)
        .exclude(category='')
        .values_list('category', flat=True)
        .distinct()
        .order_by('category')
    )
    return Response(list(categories))


# Import views
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def supplier_import_preview(request):
    """Validate a CSV file and suggest the column mapping without saving"""
    membership = get_current_membership(request, mode=MODE, write=False)
    serializer = SupplierImportRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        content, file_name = _read_upload(serializer.validated_data)
        preview = import_service.preview_import(
            membership.organization,
            content,
            mapping=serializer.validated_data.get('column_mapping'),
        )
        preview['file_name'] = file_name
        return Response(preview)
    except Exception as e:
        logger.error(f"Error in supplier_import_preview: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while reading the file'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def supplier_import(request):
    """Import suppliers from a CSV file"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    serializer = SupplierImportRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        content, file_name = _read_upload(data)
        record = import_service.import_suppliers(
            organization,
            content,
            file_name=file_name,
            mapping=data.get('column_mapping'),
            update_existing=data['update_existing'],
            skip_duplicates=data['skip_duplicates'],
            default_status=data['default_status'],
            user=request.user,
        )
    except Exception as e:
        logger.error(f"Error in supplier_import: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while importing suppliers'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    create_audit_log(
        request=request,
        action='import',
        model_name='SupplierImport',
        object_id=record.id,
        object_name=record.file_name,
        organization=organization,
        changes={
            'created': record.created_count,
            'updated': record.updated_count,
            'errors': record.error_count,
        },
    )
    response_status = status.HTTP_201_CREATED if record.status == 'completed' else status.HTTP_400_BAD_REQUEST
    return Response(SupplierImportSerializer(record).data, status=response_status)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_import_list(request):
    """Import history of the current organization"""
    membership = get_current_membership(request, mode=MODE)
    queryset = SupplierImport.objects.filter(organization=membership.organization)
    return paginated_response(request, queryset, SupplierImportSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_import_detail(request, pk):
    membership = get_current_membership(request, mode=MODE)
    record = get_scoped_object_or_404(SupplierImport, membership.organization, pk=pk)
    return Response(SupplierImportSerializer(record).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_import_template(request):
    """Download a sample CSV with the expected columns"""
    get_current_membership(request, mode=MODE)
    response = HttpResponse(import_service.import_template(), content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = 'attachment; filename="suppliers_template.csv"'
    return response
