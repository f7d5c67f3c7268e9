"""Serializers for the commerce API v1."""
from decimal import Decimal

from rest_framework import serializers

from orders.models import Order, OrderItem
from points.models import PendingPoint, PointTransaction
from wallet.models import WalletTransaction


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'product_name', 'quantity',
            'unit_price', 'unit_pv', 'line_total', 'line_pv',
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for Order with nested items."""

    items = OrderItemSerializer(many=True, read_only=True)
    account_email = serializers.EmailField(source='account.email', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'account', 'account_email', 'status',
            'total_amount', 'total_pv',
            'payment_wallet', 'payment_point', 'payment_point_type',
            'payment_card', 'payment_bank',
            'shipping_name', 'shipping_phone', 'shipping_address', 'shipping_memo',
            'gateway_transaction_id', 'tracking_number',
            'card_reversal_status', 'card_reversal_error',
            'paid_at', 'finalized_at', 'created_at', 'items',
        ]
        read_only_fields = fields


class OrderLineInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class ShippingInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=30)
    address = serializers.CharField(max_length=500)
    memo = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class CardDetailsInputSerializer(serializers.Serializer):
    """Either a pre-authorized ``transaction_id`` with its ``order_ref``, or keyed-in card data."""

    transaction_id = serializers.CharField(required=False, allow_blank=True)
    order_ref = serializers.CharField(required=False, allow_blank=True, max_length=50)
    card_number = serializers.CharField(required=False, allow_blank=True)
    card_expiry = serializers.CharField(required=False, allow_blank=True)
    card_auth = serializers.CharField(required=False, allow_blank=True)
    card_password = serializers.CharField(required=False, allow_blank=True, write_only=True)
    installment_months = serializers.CharField(required=False, allow_blank=True, default='00')


class PaymentInputSerializer(serializers.Serializer):
    wallet = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    point = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    card = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    bank = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    point_type = serializers.CharField(max_length=10, required=False, allow_blank=True)
    card_details = CardDetailsInputSerializer(required=False)


class OrderCreateSerializer(serializers.Serializer):
    items = OrderLineInputSerializer(many=True, allow_empty=False)
    payment = PaymentInputSerializer()
    shipping = ShippingInputSerializer()


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)


class InvoiceNumberSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100)


# ---------------------------------------------------------------------------
# Ledgers
# ---------------------------------------------------------------------------

class WalletTransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)

    class Meta:
        model = WalletTransaction
        fields = [
            'id', 'account', 'transaction_type', 'amount', 'balance_after',
            'order', 'order_number', 'description', 'created_at',
        ]
        read_only_fields = fields


class PointTransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)

    class Meta:
        model = PointTransaction
        fields = [
            'id', 'account', 'point_type', 'transaction_type', 'amount',
            'balance_after', 'order', 'order_number', 'description', 'created_at',
        ]
        read_only_fields = fields


class PendingPointSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True)

    class Meta:
        model = PendingPoint
        fields = [
            'id', 'account', 'order', 'order_number', 'point_type', 'point_amount',
            'originating_value', 'scheduled_release_date', 'status',
            'released_at', 'cancelled_at', 'created_at',
        ]
        read_only_fields = fields


class BalanceAdjustmentSerializer(serializers.Serializer):
    """One administrative credit/debit.  ``account`` is an email or account id."""

    account = serializers.CharField(max_length=255)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class BulkAdjustmentSerializer(serializers.Serializer):
    """Rows are validated one by one by the service so failures are reported per row."""

    rows = serializers.ListField(child=serializers.DictField(), allow_empty=False)
