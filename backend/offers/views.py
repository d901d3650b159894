import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import APIView

from offers.serializers import SearchSerializer
from offers.services.container import get_services
from offers.services.ratelimit import client_ip

logger = logging.getLogger(__name__)


class HealthView(APIView):
    def get(self, request):
        return Response({"status": "ok"})


class SearchView(APIView):
    def http_method_not_allowed(self, request, *args, **kwargs):
        return Response({"error": "Method not allowed"}, status=status.HTTP_405_METHOD_NOT_ALLOWED)

    def options(self, request, *args, **kwargs):
        return self.http_method_not_allowed(request, *args, **kwargs)

    def post(self, request):
        try:
            services = get_services()
            if services.search_limiter.hit(client_ip(request)):
                return Response({"error": "Too Many Requests"}, status=status.HTTP_429_TOO_MANY_REQUESTS)

            serializer = SearchSerializer(data=request.data if isinstance(request.data, dict) else {})
            serializer.is_valid(raise_exception=True)

            results = services.aggregator.search(dict(serializer.validated_data))
        except APIException:
            raise
        except Exception:
            logger.exception("Search aggregation failed")
            return Response({"error": "API failure"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({"results": results})


class AffiliatesView(APIView):
    def get(self, request):
        category = (request.query_params.get("category") or "").strip().lower()
        partners = get_services().affiliates.partners_for(category)
        return Response({"category": category, "affiliates": partners})
