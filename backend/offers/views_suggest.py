from django.http import JsonResponse
from django.views.decorators.http import require_GET

from offers.services.container import get_services
from offers.services.ratelimit import client_ip


@require_GET
def suggest(request):
    services = get_services()
    if services.suggest_limiter.hit(client_ip(request)):
        return JsonResponse({"error": "Too Many Requests"}, status=429)

    payload = services.suggest.suggest(
        request.GET.get("q") or "",
        lng=(request.GET.get("lng") or "it").strip().lower(),
        home=(request.GET.get("home") or "").strip(),
        mode=(request.GET.get("mode") or "general").strip(),
        limit=request.GET.get("limit"),
    )
    return JsonResponse(payload)
