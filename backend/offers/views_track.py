from django.http import HttpResponse, HttpResponseRedirect, JsonResponse
from django.views.decorators.http import require_http_methods

from offers.services.container import get_services
from offers.services.ratelimit import client_ip
from offers.services.tracker import NO_STORE_HEADERS

TRACK_PARAMS = ("url", "b64", "sig", "tab", "title", "lang")


def _harden(response):
    for header, value in NO_STORE_HEADERS.items():
        response[header] = value
    return response


@require_http_methods(["GET", "HEAD", "OPTIONS"])
def track(request):
    if request.method == "OPTIONS":
        return _harden(HttpResponse(status=204))

    services = get_services()
    ip = client_ip(request)
    if services.track_limiter.hit(ip):
        return _harden(JsonResponse({"error": "Too Many Requests"}, status=429))

    params = {name: request.GET.get(name) or "" for name in TRACK_PARAMS}
    outcome = services.tracker.resolve(params)
    if not outcome.is_redirect:
        return _harden(JsonResponse({"error": outcome.error}, status=outcome.status))

    if outcome.location != "/":
        services.tracker.record(
            ip=ip,
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
            referer=request.META.get("HTTP_REFERER", ""),
            target=outcome.location,
            params=params,
        )
    return _harden(HttpResponseRedirect(outcome.location))
