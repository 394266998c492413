from rest_framework.response import Response


class PaginationMixin:
    """Paginate a service-provided queryset with the view's pagination settings.

    ``serializer_cls`` defaults to the view's serializer class; the view's
    serializer context is always passed through.
    """

    def paginate_and_respond(self, queryset, serializer_cls=None):
        serializer_cls = serializer_cls or self.get_serializer_class()
        context = self.get_serializer_context()
        page = self.paginate_queryset(queryset)
        if page is None:
            return Response(serializer_cls(queryset, many=True, context=context).data)
        return self.get_paginated_response(serializer_cls(page, many=True, context=context).data)
