from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination; ``PAGE_SIZE`` comes from DRF settings."""

    page_size_query_param = "page_size"
    max_page_size = 100
