from django.urls import path

from offers.views import AffiliatesView, HealthView, SearchView
from offers.views_suggest import suggest
from offers.views_track import track

urlpatterns = [
    path("health", HealthView.as_view(), name="health"),
    path("search", SearchView.as_view(), name="search"),
    path("suggest", suggest, name="suggest"),
    path("track", track, name="track"),
    path("affiliates", AffiliatesView.as_view(), name="affiliates"),
]
