"""ViewSets and API views for the commerce API v1.

Views only translate HTTP to service calls.  Every domain error raised by
a service carries its own ``http_status`` and is answered as
``{"detail": message}``.
"""
import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.bulk import resolve_account
from core.exceptions import LedgerError
from orders import services as order_services
from payments import services as payment_services
from points import services as point_services
from wallet import services as wallet_services

from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsActiveAccount, IsStaff
from api.v1.serializers import (
    BalanceAdjustmentSerializer,
    BulkAdjustmentSerializer,
    InvoiceNumberSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    PendingPointSerializer,
    PointTransactionSerializer,
    WalletTransactionSerializer,
)

logger = logging.getLogger("xmall")


def _error_response(exc):
    return Response({'detail': str(exc)}, status=getattr(exc, 'http_status', status.HTTP_400_BAD_REQUEST))


def _target_account(request):
    """The requesting user, or for operators the account named by ``?account=``."""
    identifier = request.query_params.get('account')
    if identifier and request.user.is_staff:
        return resolve_account(identifier)
    if request.user.is_staff and identifier is None and request.query_params.get('all') == '1':
        return None
    return request.user


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Orders of the requesting account; operators see every order.

    - list: filter by ``status``, ``date_from``, ``date_to``; operators may ``search``
    - create: settles a new order (wallet, points, card, bank)
    - status: moves the order along its state machine, cancelling/refunding reverses it
    - invoice_number: records the tracking number and marks the order shipped
    - reversal_failures: orders whose card reversal is not confirmed
    - retry_card_reversal: asks the gateway again for one of those orders
    """

    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ('status', 'invoice_number', 'reversal_failures', 'retry_card_reversal'):
            return [IsStaff()]
        if self.action == 'create':
            return [IsActiveAccount()]
        return [IsAuthenticated()]

    def get_queryset(self):
        params = self.request.query_params
        is_staff = self.request.user.is_staff
        return order_services.list_orders(
            account=None if is_staff else self.request.user,
            status=params.get('status'),
            date_from=params.get('date_from'),
            date_to=params.get('date_to'),
            search=params.get('search') if is_staff else None,
        )

    def list(self, request, *args, **kwargs):
        try:
            return super().list(request, *args, **kwargs)
        except LedgerError as e:
            return _error_response(e)

    def retrieve(self, request, pk=None):
        try:
            order = order_services.get_order(pk, account=None if request.user.is_staff else request.user)
        except LedgerError as e:
            return _error_response(e)
        return Response(OrderSerializer(order).data)

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            order = order_services.place_order(
                request.user,
                items=data['items'],
                payment=data['payment'],
                shipping=data['shipping'],
                actor=request.user,
            )
        except LedgerError as e:
            return _error_response(e)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def status(self, request, pk=None):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = order_services.set_order_status(pk, serializer.validated_data['status'], actor=request.user)
        except LedgerError as e:
            return _error_response(e)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['post'], url_path='invoice-number')
    def invoice_number(self, request, pk=None):
        serializer = InvoiceNumberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = order_services.set_invoice_number(
                pk, serializer.validated_data['tracking_number'], actor=request.user,
            )
        except LedgerError as e:
            return _error_response(e)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=['get'], url_path='reversal-failures')
    def reversal_failures(self, request):
        page = self.paginate_queryset(order_services.list_reversal_failures())
        return self.get_paginated_response(OrderSerializer(page, many=True).data)

    @action(detail=True, methods=['post'], url_path='retry-card-reversal')
    def retry_card_reversal(self, request, pk=None):
        try:
            order = order_services.retry_card_reversal(pk, actor=request.user)
        except LedgerError as e:
            return _error_response(e)
        return Response(OrderSerializer(order).data)


# ---------------------------------------------------------------------------
# Balances and ledgers
# ---------------------------------------------------------------------------

class BalanceAPIView(APIView):
    """Point, wallet and escrowed balances of the requesting account."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            account = _target_account(request) or request.user
        except LedgerError as e:
            return _error_response(e)
        balances = point_services.get_balances(account)
        return Response({
            'account': str(account.pk),
            'point_type': balances['point_type'],
            'point_balance': str(balances['point_balance']),
            'wallet_balance': str(balances['wallet_balance']),
            'pending_point_total': str(balances['pending_point_total']),
        })


class _LedgerViewSet(viewsets.ReadOnlyModelViewSet):
    """Own ledger rows; operators pass ``?account=`` or ``?all=1``."""

    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    filterset_fields = ['transaction_type']
    ordering_fields = ['created_at', 'amount']

    def history(self, account):
        raise NotImplementedError

    def get_queryset(self):
        return self.history(_target_account(self.request))

    def list(self, request, *args, **kwargs):
        try:
            return super().list(request, *args, **kwargs)
        except LedgerError as e:
            return _error_response(e)


class WalletTransactionViewSet(_LedgerViewSet):
    serializer_class = WalletTransactionSerializer

    def history(self, account):
        return wallet_services.get_transaction_history(account=account)


class PointTransactionViewSet(_LedgerViewSet):
    serializer_class = PointTransactionSerializer
    filterset_fields = ['transaction_type', 'point_type']

    def history(self, account):
        return point_services.get_transaction_history(account=account)


class PendingPointViewSet(viewsets.ReadOnlyModelViewSet):
    """Escrowed rewards; ``release`` runs the daily release batch now."""

    serializer_class = PendingPointSerializer
    pagination_class = StandardResultsSetPagination
    filterset_fields = ['status']

    def get_permissions(self):
        if self.action == 'release':
            return [IsStaff()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return point_services.list_pending(account=_target_account(self.request))

    def list(self, request, *args, **kwargs):
        try:
            return super().list(request, *args, **kwargs)
        except LedgerError as e:
            return _error_response(e)

    @action(detail=False, methods=['post'])
    def release(self, request):
        result = point_services.release_pending_points()
        logger.info("Manual pending point release by %s: %s", request.user, result)
        return Response({
            'released_count': result['released_count'],
            'total_amount': str(result['total_amount']),
        })


# ---------------------------------------------------------------------------
# Operator adjustments
# ---------------------------------------------------------------------------

class _AdjustmentViewSet(viewsets.ViewSet):
    """Single and bulk credit/debit of one balance kind."""

    permission_classes = [IsStaff]

    def _single(self, request, operation):
        serializer = BalanceAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            account = resolve_account(data['account'])
            balance = operation(account, data['amount'], data['reason'], actor=request.user)
        except LedgerError as e:
            return _error_response(e)
        return Response({'account': str(account.pk), 'balance': str(balance)})

    def _bulk(self, request, operation):
        serializer = BulkAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = operation(serializer.validated_data['rows'], actor=request.user)
        return Response(result.as_dict())


class AdminWalletViewSet(_AdjustmentViewSet):

    @action(detail=False, methods=['post'])
    def deposit(self, request):
        return self._single(request, wallet_services.deposit)

    @action(detail=False, methods=['post'])
    def deduct(self, request):
        return self._single(request, wallet_services.deduct)

    @action(detail=False, methods=['post'], url_path='bulk-deposit')
    def bulk_deposit(self, request):
        return self._bulk(request, wallet_services.bulk_deposit)

    @action(detail=False, methods=['post'], url_path='bulk-deduct')
    def bulk_deduct(self, request):
        return self._bulk(request, wallet_services.bulk_deduct)


class AdminPointViewSet(_AdjustmentViewSet):

    @action(detail=False, methods=['post'])
    def grant(self, request):
        return self._single(request, point_services.grant_points)

    @action(detail=False, methods=['post'])
    def deduct(self, request):
        return self._single(request, point_services.deduct_points)

    @action(detail=False, methods=['post'], url_path='bulk-grant')
    def bulk_grant(self, request):
        return self._bulk(request, point_services.bulk_grant)

    @action(detail=False, methods=['post'], url_path='bulk-deduct')
    def bulk_deduct(self, request):
        return self._bulk(request, point_services.bulk_deduct)


# ---------------------------------------------------------------------------
# Gateway webhook
# ---------------------------------------------------------------------------

class PaymentCallbackAPIView(APIView):
    """Result notification from the card gateway.  Unauthenticated."""

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        return Response(payment_services.handle_payment_callback(request.data))
