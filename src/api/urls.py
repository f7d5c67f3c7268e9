"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r'orders', v1_views.OrderViewSet, basename='order')
router.register(r'wallet-transactions', v1_views.WalletTransactionViewSet, basename='wallet-transaction')
router.register(r'point-transactions', v1_views.PointTransactionViewSet, basename='point-transaction')
router.register(r'pending-points', v1_views.PendingPointViewSet, basename='pending-point')
router.register(r'admin/wallet', v1_views.AdminWalletViewSet, basename='admin-wallet')
router.register(r'admin/points', v1_views.AdminPointViewSet, basename='admin-points')

urlpatterns = [
    path('auth/token/', TokenObtainPairView.as_view(), name='token-obtain'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('balances/', v1_views.BalanceAPIView.as_view(), name='balances'),
    path('payments/callback/', v1_views.PaymentCallbackAPIView.as_view(), name='payment-callback'),
    path('', include(router.urls)),
]
