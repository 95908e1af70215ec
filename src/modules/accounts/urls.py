"""Account URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.accounts.views import DeliveryAssociateViewSet

router = DefaultRouter(trailing_slash=True)
router.register(
    "delivery-associates", DeliveryAssociateViewSet, basename="delivery-associate"
)

urlpatterns = router.urls
