"""Page/limit pagination shared by the list endpoints"""
from django.core.paginator import Paginator
from rest_framework import status
from rest_framework.response import Response

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def parse_page_params(query_params):
    """Return ``(page, limit)``; raises ValueError on non-integers or a limit below 1"""
    try:
        page = int(query_params.get('page') or 1)
        limit = int(query_params.get('limit') or DEFAULT_PAGE_SIZE)
    except (TypeError, ValueError):
        raise ValueError('page and limit must be integers')
    if limit < 1:
        raise ValueError('limit must be at least 1')
    return page, min(limit, MAX_PAGE_SIZE)


def paginated_response(request, queryset, serializer_class, context=None):
    try:
        page, limit = parse_page_params(request.query_params)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context=context or {})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
